from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class CartLine(BaseModel):
    """One product (optionally a size/color variant) with its price snapshot."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(alias="id")
    name: str
    unit_price: float = Field(alias="price")
    discount_unit_price: Optional[float] = Field(default=None, alias="discountPrice")
    quantity: int = Field(ge=1)
    image_ref: str = Field(default="", alias="imageString")
    size: Optional[str] = None
    color: Optional[str] = None

    @classmethod
    def snapshot(cls, product, quantity: int, size: Optional[str] = None, color: Optional[str] = None):
        """Copy the product's current price, discount and first image into a new line."""
        return cls(
            product_id=product.id,
            name=product.name,
            unit_price=product.price,
            discount_unit_price=product.discount_price or None,
            image_ref=product.images[0] if product.images else "",
            quantity=quantity,
            size=size,
            color=color,
        )

    @property
    def effective_price(self) -> float:
        if self.discount_unit_price is not None:
            return self.discount_unit_price
        return self.unit_price

    def matches(self, product_id: str, size: Optional[str], color: Optional[str]) -> bool:
        return self.product_id == product_id and self.size == size and self.color == color


class Cart(BaseModel):
    """Cache-resident cart. A stored cart always has at least one line."""

    owner_id: str = Field(
        validation_alias=AliasChoices("ownerId", "userId", "owner_id"),
        serialization_alias="ownerId",
    )
    items: List[CartLine] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    def find_line(self, product_id: str) -> Optional[CartLine]:
        return next((line for line in self.items if line.product_id == product_id), None)


class CartTotals(BaseModel):
    subtotal: float
    item_count: int


# HTTP request/response models


class AddItemRequest(BaseModel):
    product_id: str
    quantity: int = 1


class AddItemWithOptionsRequest(BaseModel):
    product_id: str
    size: Optional[str] = None
    color: Optional[str] = None
    quantity: int = 1


class UpdateQuantityRequest(BaseModel):
    quantity: int


class CartResponse(BaseModel):
    owner_id: Optional[str] = None
    items: List[CartLine]
    subtotal: float
    item_count: int
