import logging
from typing import Optional

from sqlalchemy.orm import Session

from storefront.cart.cart_store import CartMutation, CartStore
from storefront.cart.schemas import Cart, CartLine, CartTotals
from storefront.catalog.repository import ProductCatalog, check_order_quantity
from storefront.config import settings
from storefront.errors import NotFound, StorefrontError, ValidationError
from storefront.identity.directory import require_identity
from storefront.identity.schemas import Identity
from storefront.results import OperationResult

logger = logging.getLogger(__name__)


def compute_totals(cart: Optional[Cart]) -> CartTotals:
    """Subtotal uses the discounted snapshot price where one exists."""
    if cart is None:
        return CartTotals(subtotal=0, item_count=0)
    subtotal = sum(line.quantity * line.effective_price for line in cart.items)
    return CartTotals(subtotal=subtotal, item_count=len(cart.items))


class CartService:
    """Cart mutation and pricing on top of the cart store and the product catalog.

    Public operations never raise: cache and persistence failures come back as
    an unsuccessful OperationResult.
    """

    def __init__(self, cart_store: CartStore, db: Session, quantity_ceiling: int = settings.update_quantity_ceiling):
        self.store = cart_store
        self.catalog = ProductCatalog(db)
        self.quantity_ceiling = quantity_ceiling

    def get_cart(self, identity: Optional[Identity]) -> Optional[Cart]:
        if identity is None:
            return None
        return self.store.get(identity.user_id)

    def add(self, identity: Optional[Identity], product_id: str, quantity: int = 1) -> OperationResult:
        """Add a product, merging with any line for the same product regardless of variant."""

        def apply(owner_id: str, product) -> CartMutation:
            def mutation(cart: Optional[Cart]) -> Cart:
                cart = cart or Cart(owner_id=owner_id)
                existing = cart.find_line(product_id)
                if existing:
                    existing.quantity += quantity
                else:
                    cart.items.append(CartLine.snapshot(product, quantity))
                return cart

            return mutation

        return self._run("add", identity, product_id, quantity, apply)

    def add_with_options(
        self,
        identity: Optional[Identity],
        product_id: str,
        size: Optional[str] = None,
        color: Optional[str] = None,
        quantity: int = 1,
    ) -> OperationResult:
        """Add a product variant. Lines are matched on (product, size, color)."""

        def apply(owner_id: str, product) -> CartMutation:
            check_order_quantity(product, quantity)

            def mutation(cart: Optional[Cart]) -> Cart:
                cart = cart or Cart(owner_id=owner_id)
                existing = next((line for line in cart.items if line.matches(product_id, size, color)), None)
                if existing:
                    existing.quantity += quantity
                else:
                    cart.items.append(CartLine.snapshot(product, quantity, size=size, color=color))
                return cart

            return mutation

        return self._run("add_with_options", identity, product_id, quantity, apply)

    def update_quantity(self, identity: Optional[Identity], product_id: str, quantity: int) -> OperationResult:
        """Set a line's quantity, clamped to [1, ceiling], and re-price it from the catalog."""
        clamped = max(1, min(quantity, self.quantity_ceiling))

        def apply(owner_id: str, product) -> CartMutation:
            def mutation(cart: Optional[Cart]) -> Cart:
                if cart is None:
                    raise NotFound("Cart not found")
                lines = [line for line in cart.items if line.product_id == product_id]
                if not lines:
                    raise NotFound("Product not in cart")
                for line in lines:
                    line.quantity = clamped
                    line.unit_price = product.price
                    line.discount_unit_price = product.discount_price or None
                return cart

            return mutation

        try:
            owner_id = require_identity(identity).user_id
            current = self.store.read(owner_id)
            if current.error:
                raise current.error
            if current.cart is None:
                raise NotFound("Cart not found")
        except StorefrontError as e:
            return OperationResult.fail(e)

        return self._run("update_quantity", identity, product_id, clamped, apply)

    def remove(self, identity: Optional[Identity], product_id: str) -> OperationResult:
        """Remove every line for the product. Removing the last line deletes the cart."""
        try:
            owner_id = require_identity(identity).user_id

            def mutation(cart: Optional[Cart]) -> Cart:
                if cart is None:
                    raise NotFound("Cart not found")
                cart.items = [line for line in cart.items if line.product_id != product_id]
                return cart

            self._write(owner_id, mutation)
            logger.info(f"Removed item {product_id} from cart for user {owner_id}", extra={"owner_id": owner_id})
            return OperationResult.ok()
        except StorefrontError as e:
            return OperationResult.fail(e)
        except Exception:
            logger.exception("Error in remove")
            return OperationResult.unexpected()

    @staticmethod
    def compute_totals(cart: Optional[Cart]) -> CartTotals:
        return compute_totals(cart)

    def _write(self, owner_id: str, mutation: CartMutation) -> Optional[Cart]:
        result = self.store.mutate(owner_id, mutation)
        if result.error:
            raise result.error
        return result.cart

    def _run(self, action: str, identity, product_id: str, quantity: int, apply) -> OperationResult:
        """Resolve identity and product, then write the mutation built by ``apply``."""
        try:
            owner_id = require_identity(identity).user_id
            if quantity < 1:
                raise ValidationError("Quantity must be at least 1.")
            product = self.catalog.get_by_id(product_id)
            self._write(owner_id, apply(owner_id, product))
            logger.info(
                f"{action}: product {product_id} x{quantity} for user {owner_id}",
                extra={"owner_id": owner_id},
            )
            return OperationResult.ok()
        except StorefrontError as e:
            return OperationResult.fail(e)
        except Exception:
            logger.exception(f"Error in {action}")
            return OperationResult.unexpected()
