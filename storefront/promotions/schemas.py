from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, model_validator


class SaleWindow(BaseModel):
    start: datetime
    end: datetime

    @model_validator(mode="after")
    def check_order(self):
        if self.start >= self.end:
            raise ValueError("Flash sale must end after it starts")
        return self


class CreateFlashSaleRequest(BaseModel):
    name: str
    description: Optional[str] = None
    window: SaleWindow
    discount_percentage: float
    product_ids: List[str]


class UpdateFlashSaleRequest(BaseModel):
    is_active: bool
