from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from storefront.orders.models import OrderStatus


class OrderLine(BaseModel):
    """Order item to be written. ``unit_price`` is in major units."""

    product_id: str
    vendor_id: Optional[str] = None
    quantity: int
    unit_price: float
    size: Optional[str] = None
    color: Optional[str] = None


class DirectOrderRequest(BaseModel):
    product_id: str
    size: Optional[str] = None
    color: Optional[str] = None
    quantity: int = 1


class UpdateStatusRequest(BaseModel):
    status: OrderStatus


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    vendor_id: Optional[str] = None
    quantity: int
    price: int
    size: Optional[str] = None
    color: Optional[str] = None


class OrderResponse(BaseModel):
    """Response model for order."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    status: str
    total: int
    created_at: Optional[datetime] = None
    items: List[OrderItemResponse]
