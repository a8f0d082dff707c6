import logging
import math
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.catalog.repository import ProductCatalog
from storefront.errors import NotFound, PersistenceFailure, StorefrontError, ValidationError
from storefront.promotions.models import FlashSale, FlashSaleProduct
from storefront.promotions.schemas import SaleWindow
from storefront.results import FlashSaleResult

logger = logging.getLogger(__name__)


def discounted_price(price: float, discount_pct: float) -> float:
    """Price after a percentage discount, rounded to a whole unit (halves up)."""
    return float(math.floor(price * (1 - discount_pct / 100) + 0.5))


class FlashSaleEngine:
    """Computes flash-sale prices and writes each sale fully formed."""

    def __init__(self, db: Session):
        self.db = db
        self.catalog = ProductCatalog(db)

    def create(
        self,
        name: str,
        window: SaleWindow,
        discount_pct: float,
        product_ids: Iterable[str],
        description: Optional[str] = None,
    ) -> FlashSaleResult:
        try:
            sale = self._create(name, window, discount_pct, list(dict.fromkeys(product_ids)), description)
        except StorefrontError as e:
            return FlashSaleResult.fail(e)
        except Exception:
            logger.exception("Error creating flash sale")
            self.db.rollback()
            return FlashSaleResult.fail(PersistenceFailure("Failed to create flash sale. Please try again."))

        return FlashSaleResult.ok(flash_sale_id=sale.id, message="Flash sale created successfully!")

    def _create(self, name, window, discount_pct, product_ids, description) -> FlashSale:
        if not name:
            raise ValidationError("Flash sale name is required.")
        if not 0 < discount_pct < 100:
            raise ValidationError("Discount percentage must be between 0 and 100.")
        if not product_ids:
            raise ValidationError("Select at least one product.")

        products = {product.id: product for product in self.catalog.get_by_ids(product_ids)}
        missing = [product_id for product_id in product_ids if product_id not in products]
        if missing:
            raise NotFound(f"Products not found: {', '.join(missing)}")

        # Every price is known before anything is written, so no reader sees a partial sale
        sale = FlashSale(
            name=name,
            description=description,
            start_date=window.start,
            end_date=window.end,
            is_active=True,
            products=[
                FlashSaleProduct(
                    product_id=product_id,
                    discount_price=discounted_price(products[product_id].price, discount_pct),
                )
                for product_id in product_ids
            ],
        )
        try:
            self.db.add(sale)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceFailure("Failed to create flash sale. Please try again.") from e

        logger.info(f"Created flash sale {sale.id} ({name}) over {len(product_ids)} products at {discount_pct}% off")
        return sale

    def get(self, sale_id: str) -> Optional[FlashSale]:
        return self.db.query(FlashSale).filter(FlashSale.id == sale_id).first()

    def set_active(self, sale_id: str, active: bool) -> FlashSaleResult:
        try:
            sale = self.get(sale_id)
            if not sale:
                raise NotFound("Flash sale not found")
            sale.is_active = active
            self.db.commit()
        except StorefrontError as e:
            return FlashSaleResult.fail(e)
        except SQLAlchemyError:
            logger.exception("Error updating flash sale status")
            self.db.rollback()
            return FlashSaleResult.fail(PersistenceFailure("Failed to update flash sale status"))

        logger.info(f"Flash sale {sale_id} active={active}")
        return FlashSaleResult.ok(flash_sale_id=sale_id)
