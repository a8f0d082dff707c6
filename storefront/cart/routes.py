from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from storefront.cart.cart_service import CartService, compute_totals
from storefront.cart.cart_store import CartStore
from storefront.cart.schemas import (
    AddItemRequest,
    AddItemWithOptionsRequest,
    CartResponse,
    UpdateQuantityRequest,
)
from storefront.dependencies import get_cart_store, get_identity, raise_for_result
from storefront.identity.schemas import Identity
from storefront.results import OperationResult
from storefront.shared.database import get_db

router = APIRouter(prefix="/cart", tags=["cart"])


def get_cart_service(
    cart_store: CartStore = Depends(get_cart_store),
    db: Session = Depends(get_db),
) -> CartService:
    return CartService(cart_store, db)


@router.get("", response_model=CartResponse)
async def get_cart(
    identity: Optional[Identity] = Depends(get_identity),
    service: CartService = Depends(get_cart_service),
) -> CartResponse:
    """Get caller's cart. A missing or unreachable cart reads as empty."""
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authenticated")
    cart = service.get_cart(identity)
    totals = compute_totals(cart)
    return CartResponse(
        owner_id=identity.user_id,
        items=cart.items if cart else [],
        subtotal=totals.subtotal,
        item_count=totals.item_count,
    )


@router.post("/items", status_code=status.HTTP_201_CREATED, response_model=OperationResult)
async def add_item(
    item: AddItemRequest,
    identity: Optional[Identity] = Depends(get_identity),
    service: CartService = Depends(get_cart_service),
) -> OperationResult:
    """Add item to cart."""
    return raise_for_result(service.add(identity, item.product_id, item.quantity))


@router.post("/items/options", status_code=status.HTTP_201_CREATED, response_model=OperationResult)
async def add_item_with_options(
    item: AddItemWithOptionsRequest,
    identity: Optional[Identity] = Depends(get_identity),
    service: CartService = Depends(get_cart_service),
) -> OperationResult:
    """Add a size/color variant, enforcing the product's order-quantity bounds."""
    return raise_for_result(
        service.add_with_options(identity, item.product_id, item.size, item.color, item.quantity)
    )


@router.put("/items/{product_id}", response_model=OperationResult)
async def update_item_quantity(
    product_id: str,
    request: UpdateQuantityRequest,
    identity: Optional[Identity] = Depends(get_identity),
    service: CartService = Depends(get_cart_service),
) -> OperationResult:
    """Update item quantity and refresh its price."""
    return raise_for_result(service.update_quantity(identity, product_id, request.quantity))


@router.delete("/items/{product_id}", response_model=OperationResult)
async def remove_item(
    product_id: str,
    identity: Optional[Identity] = Depends(get_identity),
    service: CartService = Depends(get_cart_service),
) -> OperationResult:
    """Remove item from cart."""
    return raise_for_result(service.remove(identity, product_id))
