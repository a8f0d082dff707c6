import enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from storefront.shared.database import Base


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


def new_order_id() -> str:
    return f"ORD-{uuid4().hex[:12].upper()}"


class Order(Base):
    """Order model. Amounts are stored in minor currency units (cents)."""

    __tablename__ = "orders"

    id = Column(String(255), primary_key=True, default=new_order_id)
    user_id = Column(String(255), ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(50), default=OrderStatus.PENDING.value, nullable=False)
    total = Column(Integer, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", lazy="selectin")


class OrderItem(Base):
    """Order line attributed to the vendor that supplies the product. Immutable once written."""

    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    order_id = Column(String(255), ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(String(255), ForeignKey("products.id"), nullable=False, index=True)
    vendor_id = Column(String(255), nullable=True, index=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)  # unit price, minor units
    size = Column(String(50), nullable=True)
    color = Column(String(50), nullable=True)

    order = relationship("Order", back_populates="items")
