from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storefront.dependencies import raise_for_result
from storefront.promotions.flash_sale import FlashSaleEngine
from storefront.promotions.schemas import CreateFlashSaleRequest, UpdateFlashSaleRequest
from storefront.results import FlashSaleResult
from storefront.shared.database import get_db

router = APIRouter(prefix="/flash-sales", tags=["promotions"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=FlashSaleResult)
async def create_flash_sale(request: CreateFlashSaleRequest, db: Session = Depends(get_db)) -> FlashSaleResult:
    """Create a flash sale with discount prices computed from current product prices."""
    result = FlashSaleEngine(db).create(
        request.name,
        request.window,
        request.discount_percentage,
        request.product_ids,
        description=request.description,
    )
    return raise_for_result(result)


@router.patch("/{sale_id}", response_model=FlashSaleResult)
async def update_flash_sale(
    sale_id: str, request: UpdateFlashSaleRequest, db: Session = Depends(get_db)
) -> FlashSaleResult:
    """Activate or deactivate a flash sale."""
    return raise_for_result(FlashSaleEngine(db).set_active(sale_id, request.is_active))
