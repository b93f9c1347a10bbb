"""
Inventory-related exceptions.
"""

from .base import StorefrontException, NotFoundException


class InventoryException(StorefrontException):
    """Base exception for stock and reservation errors."""
    pass


class InsufficientStockException(InventoryException):
    """Raised when a requested quantity exceeds the available (total - reserved) stock."""

    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, product_id: str, variant_key: str, requested: int, available: int,
                 product_name: str | None = None):
        label = product_name or product_id
        color, _, size = variant_key.rpartition('-')
        super().__init__(
            f"Insufficient stock for {label} ({color} / {size}). "
            f"Available: {available}, Requested: {requested}",
            details={
                'product_id': product_id,
                'variant_key': variant_key,
                'requested': requested,
                'available': available,
            }
        )
        self.product_id = product_id
        self.product_name = product_name
        self.variant_key = variant_key
        self.requested = requested
        self.available = available


class ProductNotFoundException(InventoryException, NotFoundException):
    """Raised when an inventory operation references a product that does not exist."""

    code = "PRODUCT_NOT_FOUND"
    status_code = 404

    def __init__(self, product_id: str):
        super().__init__(
            f"Product {product_id} not found",
            details={'product_id': product_id}
        )
        self.product_id = product_id


class InvalidQuantityException(InventoryException):
    """Raised when a hold is requested for a quantity below 1."""

    code = "INVALID_QUANTITY"
    status_code = 400

    def __init__(self, product_id: str, variant_key: str, quantity: int):
        super().__init__(
            f"Invalid quantity {quantity} for {product_id} {variant_key}",
            details={
                'product_id': product_id,
                'variant_key': variant_key,
                'quantity': quantity,
            }
        )
        self.product_id = product_id
        self.variant_key = variant_key
        self.quantity = quantity
