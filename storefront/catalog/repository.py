import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from storefront.catalog.models import Product
from storefront.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


class ProductCatalog:
    """Read-only product access for the cart and order paths."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def find(self, product_id: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def get_by_id(self, product_id: str) -> Product:
        """Get product by ID, raising NotFound if it does not exist."""
        product = self.find(product_id)
        if not product:
            logger.warning(f"Product {product_id} not found")
            raise NotFound("Product not found")
        return product

    def get_by_ids(self, product_ids: Iterable[str]) -> List[Product]:
        """Fetch several products in one query. Unknown ids are skipped."""
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return []
        return self.db.query(Product).filter(Product.id.in_(ids)).all()


def check_order_quantity(product: Product, quantity: int) -> None:
    """Validate a requested quantity against the product's order bounds.

    A bound of None or 0 means the product has no such bound.
    """
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1.")

    if product.min_order_quantity and quantity < product.min_order_quantity:
        raise ValidationError(
            f"Minimum order quantity is {product.min_order_quantity}. Please increase your quantity."
        )

    if product.max_order_quantity and quantity > product.max_order_quantity:
        raise ValidationError(
            f"Maximum order quantity is {product.max_order_quantity}. Please reduce your quantity."
        )
