import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union

from sqlalchemy import and_
from sqlalchemy.orm import Session

from storefront.catalog.models import Product
from storefront.errors import ValidationError
from storefront.orders.models import Order, OrderItem, OrderStatus
from storefront.orders.schemas import OrderLine

logger = logging.getLogger(__name__)


def to_minor_units(amount: float) -> int:
    """Convert a major-unit amount (e.g. rands) to integer cents, rounding halves up."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class OrderRepository:
    """Repository for order operations.

    Methods flush but never commit; the calling service owns the transaction.
    """

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def create_order(self, user_id: str, total: float, items: Iterable[OrderLine]) -> Order:
        """Create an order with its items. ``total`` and item prices are major units."""
        order = Order(
            user_id=user_id,
            total=to_minor_units(total),
            status=OrderStatus.PENDING.value,
            items=[
                OrderItem(
                    product_id=line.product_id,
                    vendor_id=line.vendor_id,
                    quantity=line.quantity,
                    price=to_minor_units(line.unit_price),
                    size=line.size or None,
                    color=line.color or None,
                )
                for line in items
            ],
        )
        self.db.add(order)
        self.db.flush()
        logger.info(f"Created order {order.id} for user {user_id}", extra={"order_id": order.id})
        return order

    def get_order(self, order_id: str) -> Optional[Order]:
        """Get order by id."""
        return self.db.query(Order).filter(Order.id == order_id).first()

    def update_status(self, order_id: str, status: Union[OrderStatus, str]) -> Optional[Order]:
        """Update order status. Returns None if the order does not exist."""
        try:
            status = OrderStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown order status {status}")

        order = self.get_order(order_id)
        if order:
            order.status = status.value
            self.db.flush()
            logger.info(f"Updated order {order_id} status to {status.value}", extra={"order_id": order_id})
        return order

    def decrement_stock(self, product_id: str, quantity: int) -> bool:
        """Decrement stock only if enough remains. Returns False otherwise."""
        updated = self.db.query(Product).filter(
            and_(
                Product.id == product_id,
                Product.stock >= quantity,
            )
        ).update({Product.stock: Product.stock - quantity}, synchronize_session="fetch")

        if updated == 0:
            logger.error(f"Insufficient stock for product {product_id}: need {quantity}")
            return False

        logger.info(f"Decremented stock of {product_id} by {quantity}")
        return True
