"""
Promotion API Endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Path, Body, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.config import settings
from backend.app.core.dependencies import get_current_user, get_actor
from backend.app.core.guards import require_role, STAFF_ROLES
from backend.app.models.billing_enums import PromotionStatus
from backend.app.schemas.common import ApiResponse, PageResponse
from backend.app.schemas.promotion import (
    PromotionCreate, PromotionUpdate, PromotionResponse,
    PromotionValidateRequest, PromotionValidateResponse
)
from backend.app.domain.rental.promotion_service import PromotionService
from backend.app.domain.rental.promotion_validator import PromotionValidator

router = APIRouter(prefix="/promotions", tags=["Promotions"])


@router.post("/validate", response_model=ApiResponse[PromotionValidateResponse])
async def validate_promotion(
    request: PromotionValidateRequest = Body(...),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Check a code against a candidate order.

    Always 200: an unusable code comes back with is_valid=false and the reason.
    """
    result = await PromotionValidator.validate(
        db,
        request.promotion_code,
        request.sub_total,
        request.start_date,
        request.end_date
    )
    return ApiResponse(data=result, message=result.message)


@router.post("", response_model=ApiResponse[PromotionResponse], status_code=status.HTTP_201_CREATED)
async def create_promotion(
    promotion_in: PromotionCreate = Body(...),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    promotion = await PromotionService.create_promotion(db, promotion_in, actor=get_actor(current_user))
    await db.commit()
    return ApiResponse(
        data=PromotionResponse.model_validate(promotion),
        message=f"Promotion {promotion.code} created"
    )


@router.get("", response_model=ApiResponse[PageResponse[PromotionResponse]])
async def list_promotions(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=100),
    status_filter: Optional[PromotionStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    promotions, total = await PromotionService.list_promotions(
        db, page=page, page_size=page_size, status=status_filter, search=search
    )
    return ApiResponse(data=PageResponse(
        items=[PromotionResponse.model_validate(p) for p in promotions],
        total=total,
        page=page,
        page_size=page_size
    ))


@router.get("/{promotion_id}", response_model=ApiResponse[PromotionResponse])
async def get_promotion(
    promotion_id: int = Path(..., description="Promotion ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    promotion = await PromotionService.get_promotion(db, promotion_id)
    return ApiResponse(data=PromotionResponse.model_validate(promotion))


@router.put("/{promotion_id}", response_model=ApiResponse[PromotionResponse])
async def update_promotion(
    promotion_id: int = Path(..., description="Promotion ID"),
    promotion_in: PromotionUpdate = Body(...),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    promotion = await PromotionService.update_promotion(
        db, promotion_id, promotion_in, actor=get_actor(current_user)
    )
    await db.commit()
    return ApiResponse(
        data=PromotionResponse.model_validate(promotion),
        message=f"Promotion {promotion.code} updated"
    )


@router.delete("/{promotion_id}", response_model=ApiResponse)
async def delete_promotion(
    promotion_id: int = Path(..., description="Promotion ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    await PromotionService.delete_promotion(db, promotion_id, actor=get_actor(current_user))
    await db.commit()
    return ApiResponse(message="Promotion deleted")


@router.post(
    "/{promotion_id}/copy",
    response_model=ApiResponse[PromotionResponse],
    status_code=status.HTTP_201_CREATED
)
async def copy_promotion(
    promotion_id: int = Path(..., description="Promotion ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Duplicate a promotion under a fresh `CODE_n` code."""
    promotion = await PromotionService.copy_promotion(db, promotion_id, actor=get_actor(current_user))
    await db.commit()
    return ApiResponse(
        data=PromotionResponse.model_validate(promotion),
        message=f"Promotion copied as {promotion.code}"
    )
