"""Error taxonomy shared by the cart, checkout, direct-order and flash-sale paths.

Services raise these internally and convert them into results at their public
boundary. Each error carries a stable ``code`` that request handlers put in
redirect query strings and JSON bodies.
"""

from typing import Optional


class StorefrontError(Exception):
    """Base class for expected, user-reportable failures."""

    code = "error"
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthRequired(StorefrontError):
    code = "auth-required"
    default_message = "User not authenticated"


class NotFound(StorefrontError):
    code = "not-found"
    default_message = "Not found"


class ValidationError(StorefrontError):
    """Quantity (or other input) outside the allowed bounds."""

    code = "validation-error"
    default_message = "Invalid request"


class CacheUnavailable(StorefrontError):
    code = "cache-unavailable"
    default_message = "Failed to update cart"


class EmptyCart(StorefrontError):
    code = "empty-cart"
    default_message = "Cart is empty"


class InsufficientStock(StorefrontError):
    code = "insufficient-stock"
    default_message = "Insufficient stock available"


class PersistenceFailure(StorefrontError):
    code = "order-creation-failed"
    default_message = "Failed to create order"
