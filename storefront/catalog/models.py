from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String, func

from storefront.shared.database import Base


class Product(Base):
    """Product as seen by the cart and order paths. Catalog management lives elsewhere."""

    __tablename__ = "products"

    id = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=False)
    price = Column(Float, nullable=False)
    discount_price = Column(Float, nullable=True)
    is_sale = Column(Boolean, default=False, nullable=False)
    stock = Column(Integer, default=0, nullable=False)
    min_order_quantity = Column(Integer, nullable=True)
    max_order_quantity = Column(Integer, nullable=True)
    vendor_id = Column(String(255), nullable=True, index=True)
    images = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
