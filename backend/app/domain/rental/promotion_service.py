"""
Promotion Service.

Promotion maintenance plus the usage-slot bookkeeping that rental orders
rely on. Slots are claimed with a single conditional UPDATE so two orders
racing for the last use cannot both get it.
"""

import logging
from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, or_

from backend.app.core.exceptions import ResourceNotFoundError, BusinessRuleViolationError
from backend.app.models.promotion import Promotion
from backend.app.models.billing_enums import PromotionStatus
from backend.app.schemas.promotion import PromotionCreate, PromotionUpdate
from backend.app.domain.values import to_money, naive_utc

logger = logging.getLogger("drivenow.promotions")


async def reserve_promotion_usage(db: AsyncSession, code: str) -> bool:
    """
    Take one usage slot of an ACTIVE promotion.

    Returns:
        True if a slot was taken, False if the code is gone, inactive or used up
    """
    result = await db.execute(
        update(Promotion)
        .where(
            Promotion.code == code,
            Promotion.is_deleted == False,
            Promotion.status == PromotionStatus.ACTIVE,
            or_(Promotion.usage_limit.is_(None), Promotion.used_count < Promotion.usage_limit)
        )
        .values(used_count=Promotion.used_count + 1)
        .returning(Promotion.id)
        .execution_options(synchronize_session=False)
    )
    return result.first() is not None


async def release_promotion_usage(db: AsyncSession, code: str) -> None:
    """Give back a slot taken by reserve_promotion_usage."""
    await db.execute(
        update(Promotion)
        .where(Promotion.code == code, Promotion.is_deleted == False, Promotion.used_count > 0)
        .values(used_count=Promotion.used_count - 1)
        .execution_options(synchronize_session=False)
    )


class PromotionService:

    @staticmethod
    async def get_promotion(db: AsyncSession, promotion_id: int) -> Promotion:
        result = await db.execute(
            select(Promotion)
            .where(Promotion.id == promotion_id, Promotion.is_deleted == False)
            .execution_options(populate_existing=True)
        )
        promotion = result.scalar_one_or_none()
        if not promotion:
            raise ResourceNotFoundError("Promotion", promotion_id)
        return promotion

    @staticmethod
    async def list_promotions(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        status: Optional[PromotionStatus] = None,
        search: Optional[str] = None
    ) -> Tuple[List[Promotion], int]:
        query = select(Promotion).where(Promotion.is_deleted == False)
        if status:
            query = query.where(Promotion.status == status)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(or_(Promotion.code.ilike(pattern), Promotion.name.ilike(pattern)))

        total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
        result = await db.execute(
            query.order_by(Promotion.created_at.desc(), Promotion.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def _code_taken(db: AsyncSession, code: str) -> bool:
        result = await db.execute(
            select(Promotion.id).where(Promotion.code == code, Promotion.is_deleted == False)
        )
        return result.first() is not None

    @staticmethod
    async def create_promotion(db: AsyncSession, data: PromotionCreate, actor: Optional[str] = None) -> Promotion:
        """
        Create a promotion.

        Raises:
            BusinessRuleViolationError: Code already used by a live promotion
        """
        code = data.code.strip()
        if await PromotionService._code_taken(db, code):
            raise BusinessRuleViolationError(
                f"Promotion code {code} already exists",
                details={"code": code}
            )

        promotion = Promotion(
            code=code,
            name=data.name,
            type=data.type,
            value=to_money(data.value),
            min_amount=to_money(data.min_amount) if data.min_amount is not None else None,
            max_discount=to_money(data.max_discount) if data.max_discount is not None else None,
            start_date=naive_utc(data.start_date),
            end_date=naive_utc(data.end_date),
            usage_limit=data.usage_limit,
            used_count=0,
            status=data.status,
            created_by=actor,
            updated_by=actor
        )
        db.add(promotion)
        await db.flush()

        logger.info("Promotion %s created by %s", promotion.code, actor)
        return promotion

    @staticmethod
    async def update_promotion(
        db: AsyncSession,
        promotion_id: int,
        data: PromotionUpdate,
        actor: Optional[str] = None
    ) -> Promotion:
        promotion = await PromotionService.get_promotion(db, promotion_id)

        if data.usage_limit is not None and data.usage_limit < promotion.used_count:
            raise BusinessRuleViolationError(
                f"Usage limit ({data.usage_limit}) cannot be below the current usage ({promotion.used_count})",
                details={"usage_limit": data.usage_limit, "used_count": promotion.used_count}
            )

        promotion.name = data.name
        promotion.type = data.type
        promotion.value = to_money(data.value)
        promotion.min_amount = to_money(data.min_amount) if data.min_amount is not None else None
        promotion.max_discount = to_money(data.max_discount) if data.max_discount is not None else None
        promotion.start_date = naive_utc(data.start_date)
        promotion.end_date = naive_utc(data.end_date)
        promotion.usage_limit = data.usage_limit
        promotion.status = data.status
        promotion.updated_by = actor
        await db.flush()

        logger.info("Promotion %s updated by %s", promotion.code, actor)
        return promotion

    @staticmethod
    async def delete_promotion(db: AsyncSession, promotion_id: int, actor: Optional[str] = None) -> None:
        """Soft delete. Orders that already used the code keep their discount."""
        promotion = await PromotionService.get_promotion(db, promotion_id)
        promotion.is_deleted = True
        promotion.updated_by = actor
        await db.flush()

        logger.info("Promotion %s deleted by %s", promotion.code, actor)

    @staticmethod
    async def copy_promotion(db: AsyncSession, promotion_id: int, actor: Optional[str] = None) -> Promotion:
        """
        Duplicate a promotion under the first free code `{code}_{n}`.

        The copy starts unused.
        """
        source = await PromotionService.get_promotion(db, promotion_id)

        suffix = 1
        while await PromotionService._code_taken(db, f"{source.code}_{suffix}"):
            suffix += 1

        copy = Promotion(
            code=f"{source.code}_{suffix}",
            name=f"{source.name} (Copy)",
            type=source.type,
            value=source.value,
            min_amount=source.min_amount,
            max_discount=source.max_discount,
            start_date=source.start_date,
            end_date=source.end_date,
            usage_limit=source.usage_limit,
            used_count=0,
            status=PromotionStatus.ACTIVE,
            created_by=actor,
            updated_by=actor
        )
        db.add(copy)
        await db.flush()

        logger.info("Promotion %s copied to %s by %s", source.code, copy.code, actor)
        return copy
