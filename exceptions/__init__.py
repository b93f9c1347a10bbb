"""
Custom exceptions for the storefront backend.

This module provides a hierarchy of custom exceptions for consistent error handling
throughout the application.

Exception Hierarchy:
--------------------
StorefrontException (base)
├── NotFoundException
├── InventoryException
│   ├── InsufficientStockException
│   ├── InvalidQuantityException
│   └── ProductNotFoundException (also NotFoundException)
├── OrderException
│   ├── InvalidProductException
│   ├── PriceMismatchException
│   ├── OrderNotFoundException (also NotFoundException)
│   └── InvalidCheckoutTransitionException
├── PaymentException
│   ├── PaymentNotConfiguredException
│   └── PaymentInitializationException
└── CouponException
    └── CouponNotFoundException (also NotFoundException)

Usage:
------
Services raise specific exceptions:
    raise InsufficientStockException(product_id, variant_key, requested=2, available=1)

The API layer catches the base class and renders a structured failure:
    {"success": false, "error": str(e), "code": e.code}
"""

from .base import StorefrontException, NotFoundException
from .coupon import CouponException, CouponNotFoundException
from .inventory import (
    InventoryException,
    InsufficientStockException,
    InvalidQuantityException,
    ProductNotFoundException
)
from .order import (
    OrderException,
    InvalidProductException,
    PriceMismatchException,
    OrderNotFoundException,
    InvalidCheckoutTransitionException
)
from .payment import PaymentException, PaymentNotConfiguredException, PaymentInitializationException

__all__ = [
    # Base
    'StorefrontException',
    'NotFoundException',

    # Inventory
    'InventoryException',
    'InsufficientStockException',
    'InvalidQuantityException',
    'ProductNotFoundException',

    # Order
    'OrderException',
    'InvalidProductException',
    'PriceMismatchException',
    'OrderNotFoundException',
    'InvalidCheckoutTransitionException',

    # Payment
    'PaymentException',
    'PaymentNotConfiguredException',
    'PaymentInitializationException',

    # Coupon
    'CouponException',
    'CouponNotFoundException',
]
