from typing import Optional

import redis
from fastapi import Header, HTTPException, status

from storefront.cart.cart_store import CartStore
from storefront.identity.schemas import Identity
from storefront.results import OperationResult

# Will be set by the app lifespan in main.py
redis_client: Optional[redis.Redis] = None

STATUS_BY_ERROR_CODE = {
    "auth-required": status.HTTP_401_UNAUTHORIZED,
    "not-found": status.HTTP_404_NOT_FOUND,
    "validation-error": status.HTTP_400_BAD_REQUEST,
    "empty-cart": status.HTTP_400_BAD_REQUEST,
    "insufficient-stock": status.HTTP_409_CONFLICT,
    "cache-unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_cart_store() -> CartStore:
    return CartStore(redis_client)


def get_identity(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
    x_user_given_name: Optional[str] = Header(default=None),
    x_user_family_name: Optional[str] = Header(default=None),
    x_user_picture: Optional[str] = Header(default=None),
) -> Optional[Identity]:
    """Identity forwarded by the authenticating proxy, None for anonymous callers."""
    if not x_user_id:
        return None
    return Identity(
        user_id=x_user_id,
        email=x_user_email,
        given_name=x_user_given_name,
        family_name=x_user_family_name,
        picture=x_user_picture,
    )


def raise_for_result(result: OperationResult) -> OperationResult:
    """Turn an unsuccessful result into an HTTPException carrying its message."""
    if not result.success:
        raise HTTPException(
            status_code=STATUS_BY_ERROR_CODE.get(result.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR),
            detail={"success": False, "error": result.error, "error_code": result.error_code},
        )
    return result
