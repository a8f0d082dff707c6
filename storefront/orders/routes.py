from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.cart.cart_store import CartStore
from storefront.config import settings
from storefront.dependencies import get_cart_store, get_identity, raise_for_result
from storefront.errors import ValidationError
from storefront.identity.schemas import Identity
from storefront.orders.checkout import OrderFinalizer
from storefront.orders.direct_order import DirectOrderService
from storefront.orders.repository import OrderRepository
from storefront.orders.schemas import DirectOrderRequest, OrderResponse, UpdateStatusRequest
from storefront.results import DirectOrderResult
from storefront.shared.database import get_db

router = APIRouter(tags=["orders"])


def get_order_finalizer(
    cart_store: CartStore = Depends(get_cart_store),
    db: Session = Depends(get_db),
) -> OrderFinalizer:
    return OrderFinalizer(cart_store, db)


@router.post("/checkout")
async def checkout(
    identity: Optional[Identity] = Depends(get_identity),
    finalizer: OrderFinalizer = Depends(get_order_finalizer),
) -> RedirectResponse:
    """Convert the caller's cart into an order and redirect to the outcome page."""
    result = finalizer.checkout(identity)
    return RedirectResponse(
        result.redirect_url(settings.success_redirect_base),
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.post("/orders/direct", status_code=status.HTTP_201_CREATED, response_model=DirectOrderResult)
async def place_direct_order(
    request: DirectOrderRequest,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
) -> DirectOrderResult:
    """Order a single product without going through the cart."""
    result = DirectOrderService(db).place(
        identity, request.product_id, request.size, request.color, request.quantity
    )
    return raise_for_result(result)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
) -> OrderResponse:
    """Order confirmation lookup. Callers only see their own orders."""
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authenticated")
    order = OrderRepository(db).get_order(order_id)
    if not order or order.user_id != identity.user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Order {order_id} not found")
    return OrderResponse.model_validate(order)


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    request: UpdateStatusRequest,
    db: Session = Depends(get_db),
) -> OrderResponse:
    """Move an order to a new status."""
    repo = OrderRepository(db)
    try:
        order = repo.update_status(order_id, request.status)
        if not order:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Order {order_id} not found")
        db.commit()
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except SQLAlchemyError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update order status"
        )
    return OrderResponse.model_validate(order)
