from typing import Optional

from pydantic import BaseModel

from storefront.errors import AuthRequired, StorefrontError


class OperationResult(BaseModel):
    """Discriminated ``{success, error?}`` outcome returned to request handlers."""

    success: bool
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def ok(cls, **fields):
        return cls(success=True, **fields)

    @classmethod
    def fail(cls, exc: StorefrontError, **fields):
        return cls(success=False, error=exc.message, error_code=exc.code, **fields)

    @classmethod
    def unexpected(cls):
        return cls.fail(StorefrontError())


class DirectOrderResult(OperationResult):
    order_id: Optional[str] = None
    message: Optional[str] = None


class FlashSaleResult(OperationResult):
    flash_sale_id: Optional[str] = None
    message: Optional[str] = None


class CheckoutResult(OperationResult):
    """Outcome of converting a cart into an order.

    The caller decides how to navigate; ``redirect_url`` gives the storefront's
    conventional targets.
    """

    order_id: Optional[str] = None

    def redirect_url(self, success_base: str = "") -> str:
        if self.success:
            return f"{success_base}/payment/success?orderId={self.order_id}"
        if self.error_code == AuthRequired.code:
            return "/api/auth/login"
        return f"/bag?error={self.error_code}"
