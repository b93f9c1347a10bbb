"""
Payment-related exceptions.
"""

from .base import StorefrontException


class PaymentException(StorefrontException):
    """Base exception for payment-related errors."""

    code = "PAYMENT_ERROR"
    status_code = 502


class PaymentNotConfiguredException(PaymentException):
    """Raised when a hosted payment is requested but no provider key is configured."""

    code = "PAYMENT_NOT_CONFIGURED"
    status_code = 503

    def __init__(self, order_id: str | None = None):
        super().__init__(
            "Paystack not configured",
            details={'order_id': order_id}
        )
        self.order_id = order_id


class PaymentInitializationException(PaymentException):
    """
    Raised when the payment provider rejects or fails a transaction initialization.

    The order has already been persisted and its stock deducted when this is raised,
    so order_id is always set.
    """

    code = "PAYMENT_INIT_FAILED"

    def __init__(self, order_id: str, reason: str):
        super().__init__(
            f"Payment initialization failed for order {order_id}: {reason}",
            details={'order_id': order_id, 'reason': reason}
        )
        self.order_id = order_id
        self.reason = reason
