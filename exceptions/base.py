"""
Base exception classes for the storefront backend.
"""


class StorefrontException(Exception):
    """
    Base exception for all storefront errors.

    All custom exceptions in the backend should inherit from this class.
    This allows catching all storefront-specific exceptions with a single handler
    (the HTTP layer turns them into a structured failure with a stable code).

    Attributes:
        message: Human-readable error message
        details: Optional dict with additional context (entity IDs, amounts, etc.)
        code: Stable machine-readable error code surfaced to API clients
        status_code: HTTP status used at the API boundary
    """

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            details: Optional dict with additional context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message."""
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation with context."""
        if self.details:
            details_str = ', '.join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.__class__.__name__}('{self.message}', {details_str})"
        return f"{self.__class__.__name__}('{self.message}')"


class NotFoundException(StorefrontException):
    """Raised when a product or order is absent where existence is required."""

    code = "NOT_FOUND"
    status_code = 404
