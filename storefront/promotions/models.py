from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String, Text, func
from sqlalchemy.orm import relationship

from storefront.shared.database import Base


class FlashSale(Base):
    """Time-boxed sale over a set of products."""

    __tablename__ = "flash_sales"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    products = relationship(
        "FlashSaleProduct", back_populates="flash_sale", cascade="all, delete-orphan", lazy="selectin"
    )


class FlashSaleProduct(Base):
    __tablename__ = "flash_sale_products"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    flash_sale_id = Column(String(36), ForeignKey("flash_sales.id"), nullable=False, index=True)
    product_id = Column(String(255), ForeignKey("products.id"), nullable=False, index=True)
    discount_price = Column(Float, nullable=False)

    flash_sale = relationship("FlashSale", back_populates="products")
