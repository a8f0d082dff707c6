"""
checkout.py - Cart to Order Conversion

ORDER OF OPERATIONS:
    1. Upsert the caller's user profile (checkout must not depend on first-login timing)
    2. Read the cart, retrying a fixed number of times with a fixed delay, since the
       cache gives no read-after-write guarantee right after an add
    3. Empty or missing cart -> EmptyCart, nothing written
    4. total = subtotal + flat shipping fee
    5. Resolve product -> vendor for every line in a single query
    6. Insert the order and its items in one transaction; major -> minor unit
       conversion happens inside that write and nowhere else
    7. Only after commit, delete the cart
    8. Return the order id

FAILURE SEMANTICS:
    A failure before step 6 commits leaves the cart in place so the customer can
    retry. A cache failure in step 7 leaves the cart in place too; the order is
    already durable and the result is still a success.

    checkout() never raises an Exception subclass: every failure is logged and
    returned as a CheckoutResult carrying an error code. The caller decides where
    to navigate (see CheckoutResult.redirect_url).

    No stock sufficiency check is made on this path; only the direct-order path
    checks stock.
"""

import logging
import time
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.cart.cart_service import compute_totals
from storefront.cart.cart_store import CartStore
from storefront.cart.schemas import Cart
from storefront.catalog.repository import ProductCatalog
from storefront.config import Settings, settings as default_settings
from storefront.errors import EmptyCart, PersistenceFailure, StorefrontError
from storefront.identity.directory import UserDirectory, require_identity
from storefront.identity.schemas import Identity
from storefront.orders.repository import OrderRepository
from storefront.orders.schemas import OrderLine
from storefront.results import CheckoutResult

logger = logging.getLogger(__name__)


class OrderFinalizer:
    """Converts a cached cart into a persisted order."""

    def __init__(
        self,
        cart_store: CartStore,
        db: Session,
        settings: Settings = default_settings,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = cart_store
        self.db = db
        self.catalog = ProductCatalog(db)
        self.orders = OrderRepository(db)
        self.users = UserDirectory(db)
        self.shipping_fee = settings.flat_shipping_fee
        self.read_attempts = settings.checkout_cart_read_attempts
        self.read_delay = settings.checkout_cart_read_delay
        self.sleep = sleep

    def checkout(self, identity: Optional[Identity]) -> CheckoutResult:
        try:
            order_id = self._checkout(identity)
            return CheckoutResult.ok(order_id=order_id)
        except StorefrontError as e:
            logger.warning(f"Checkout failed: {e.message}")
            return CheckoutResult.fail(e)
        except Exception:
            logger.exception("Error in checkout")
            self.db.rollback()
            return CheckoutResult.fail(PersistenceFailure())

    def _checkout(self, identity: Optional[Identity]) -> str:
        owner_id = require_identity(identity).user_id

        try:
            self.users.upsert_from_identity(identity)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceFailure("Failed to save user profile") from e

        cart = self._load_cart(owner_id)
        if cart is None or not cart.items:
            logger.warning(f"Empty cart for user {owner_id}", extra={"owner_id": owner_id})
            raise EmptyCart()

        total = compute_totals(cart).subtotal + self.shipping_fee

        products = self.catalog.get_by_ids(line.product_id for line in cart.items)
        vendor_by_product = {product.id: product.vendor_id for product in products if product.vendor_id}

        lines = [
            OrderLine(
                product_id=line.product_id,
                vendor_id=vendor_by_product.get(line.product_id),
                quantity=line.quantity,
                unit_price=line.effective_price,
                size=line.size,
                color=line.color,
            )
            for line in cart.items
        ]

        try:
            order = self.orders.create_order(owner_id, total, lines)
            order_id = order.id
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceFailure() from e

        logger.info(f"Order {order_id} created for user {owner_id}", extra={"order_id": order_id})
        self._discard_cart(owner_id, order_id)
        return order_id

    def _load_cart(self, owner_id: str) -> Optional[Cart]:
        for attempt in range(1, self.read_attempts + 1):
            result = self.store.read(owner_id)
            if result.error:
                logger.error(f"Cart retrieval attempt {attempt} failed: {result.error.message}")
            elif result.cart:
                return result.cart
            else:
                logger.info(f"Cart retrieval attempt {attempt}: not found", extra={"owner_id": owner_id})

            if attempt < self.read_attempts:
                self.sleep(self.read_delay)
        return None

    def _discard_cart(self, owner_id: str, order_id: str) -> None:
        # Order is already committed; a cache failure here leaves the cart and still succeeds
        try:
            deleted = self.store.delete(owner_id)
        except Exception:
            logger.exception(f"Failed to clear cart after order {order_id}", extra={"order_id": order_id})
            return
        if not deleted:
            logger.warning(f"Cart for {owner_id} left in place after order {order_id}", extra={"order_id": order_id})
