import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.catalog.repository import ProductCatalog, check_order_quantity
from storefront.errors import InsufficientStock, PersistenceFailure, StorefrontError
from storefront.identity.directory import UserDirectory, require_identity
from storefront.identity.schemas import Identity
from storefront.orders.repository import OrderRepository
from storefront.orders.schemas import OrderLine
from storefront.results import DirectOrderResult

logger = logging.getLogger(__name__)


class DirectOrderService:
    """Single-product ordering that bypasses the cart (payment is arranged offline)."""

    def __init__(self, db: Session):
        self.db = db
        self.catalog = ProductCatalog(db)
        self.orders = OrderRepository(db)
        self.users = UserDirectory(db)

    def place(
        self,
        identity: Optional[Identity],
        product_id: str,
        size: Optional[str] = None,
        color: Optional[str] = None,
        quantity: int = 1,
    ) -> DirectOrderResult:
        try:
            order_id = self._place(identity, product_id, size, color, quantity)
        except StorefrontError as e:
            return DirectOrderResult.fail(e)
        except Exception:
            logger.exception("Error placing direct order")
            self.db.rollback()
            return DirectOrderResult.fail(PersistenceFailure("Failed to place order. Please try again."))

        return DirectOrderResult.ok(
            order_id=order_id,
            message=(
                f"Order #{order_id[-8:].upper()} placed successfully! We'll contact you within 24 hours "
                "to confirm payment and arrange delivery. Thank you for choosing us!"
            ),
        )

    def _place(self, identity, product_id, size, color, quantity) -> str:
        owner_id = require_identity(identity, "Please sign in to place an order").user_id

        self.users.upsert_from_identity(identity)
        self.db.commit()

        product = self.catalog.get_by_id(product_id)
        check_order_quantity(product, quantity)
        if product.stock < quantity:
            raise InsufficientStock()

        unit_price = product.discount_price if product.is_sale and product.discount_price else product.price
        line = OrderLine(
            product_id=product.id,
            vendor_id=product.vendor_id,
            quantity=quantity,
            unit_price=unit_price,
            size=size,
            color=color,
        )

        # Order insert and stock decrement commit or roll back together
        try:
            order = self.orders.create_order(owner_id, unit_price * quantity, [line])
            order_id = order.id
            if not self.orders.decrement_stock(product.id, quantity):
                raise InsufficientStock()
            self.db.commit()
        except InsufficientStock:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceFailure("Failed to place order. Please try again.") from e

        logger.info(f"Direct order {order_id} placed for {quantity} x {product_id}", extra={"order_id": order_id})
        return order_id
