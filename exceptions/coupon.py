"""
Coupon-related exceptions.
"""

from .base import StorefrontException, NotFoundException


class CouponException(StorefrontException):
    """Base exception for coupon-related errors."""
    pass


class CouponNotFoundException(CouponException, NotFoundException):
    """Raised when a discount code does not match any active coupon."""

    code = "COUPON_NOT_FOUND"
    status_code = 404

    def __init__(self, code: str):
        super().__init__(
            f"Coupon {code} not found",
            details={'coupon_code': code}
        )
        self.coupon_code = code
