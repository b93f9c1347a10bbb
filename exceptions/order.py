"""
Order-related exceptions.
"""

from .base import StorefrontException, NotFoundException


class OrderException(StorefrontException):
    """Base exception for order-related errors."""
    pass


class InvalidProductException(OrderException):
    """Raised when a cart line references a product that does not exist."""

    code = "INVALID_PRODUCT"
    status_code = 400

    def __init__(self, product_id: str, name: str | None = None):
        super().__init__(
            f"Product not found: {name or product_id}",
            details={'product_id': product_id}
        )
        self.product_id = product_id
        self.name = name


class PriceMismatchException(OrderException):
    """Raised when the client-submitted total disagrees with the server-computed total."""

    code = "PRICE_MISMATCH"
    status_code = 400

    def __init__(self, calculated_total: int, submitted_total: int, tolerance: int):
        # Generic message on purpose: tampering and stale carts look the same to the client
        super().__init__(
            "Price mismatch detected.",
            details={
                'calculated_total': calculated_total,
                'submitted_total': submitted_total,
                'tolerance': tolerance,
            }
        )
        self.calculated_total = calculated_total
        self.submitted_total = submitted_total
        self.tolerance = tolerance


class OrderNotFoundException(OrderException, NotFoundException):
    """Raised when order is not found in database."""

    code = "ORDER_NOT_FOUND"
    status_code = 404

    def __init__(self, order_id: str):
        super().__init__(
            "Order not found.",
            details={'order_id': order_id}
        )
        self.order_id = order_id


class InvalidCheckoutTransitionException(OrderException):
    """Raised when a checkout attempt is moved to a state it cannot reach."""

    def __init__(self, from_state: str, to_state: str):
        super().__init__(
            f"Invalid checkout transition {from_state} -> {to_state}",
            details={'from_state': from_state, 'to_state': to_state}
        )
        self.from_state = from_state
        self.to_state = to_state
