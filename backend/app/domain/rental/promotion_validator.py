"""
Promotion Validator.

Decides whether a promotion code applies to a candidate order and how much
it takes off. Validation never changes `used_count`; usage slots are
reserved separately by PromotionService when an order is saved.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from backend.app.models.promotion import Promotion
from backend.app.models.billing_enums import PromotionType, PromotionStatus
from backend.app.schemas.promotion import PromotionValidateResponse, PromotionResponse
from backend.app.domain.values import to_money, naive_utc, ZERO


def calculate_discount(
    promotion_type: PromotionType,
    value: Decimal,
    sub_total: Decimal,
    max_discount: Optional[Decimal] = None
) -> Decimal:
    """
    Discount for a subtotal.

    PERCENTAGE: sub_total * value / 100, capped at max_discount when set.
    FIXED_AMOUNT: value, capped at sub_total so the total never goes negative.
    """
    if promotion_type == PromotionType.PERCENTAGE:
        discount = to_money(sub_total * value / Decimal(100))
        if max_discount is not None and discount > max_discount:
            discount = to_money(max_discount)
        return discount

    discount = to_money(value)
    if discount > sub_total:
        discount = to_money(sub_total)
    return discount


def _invalid(message: str) -> PromotionValidateResponse:
    return PromotionValidateResponse(is_valid=False, message=message, discount_amount=ZERO)


async def find_promotion_by_code(db: AsyncSession, code: str) -> Optional[Promotion]:
    result = await db.execute(
        select(Promotion)
        .where(Promotion.code == code.strip(), Promotion.is_deleted == False)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


class PromotionValidator:

    @staticmethod
    async def validate(
        db: AsyncSession,
        code: str,
        sub_total: Decimal,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        already_reserved: bool = False,
        now: Optional[datetime] = None
    ) -> PromotionValidateResponse:
        """
        Validate a promotion code for an order.

        Checks, in order:
        1. Code exists (and is not deleted)
        2. Promotion is ACTIVE
        3. Rental period overlaps the promotion window (by calendar date);
           without rental dates, `now` must fall inside the window
        4. sub_total reaches min_amount
        5. Usage limit not reached

        Args:
            db: Database session
            code: Promotion code as typed by the user
            sub_total: Order subtotal before discount
            start_date: Rental start (optional)
            end_date: Rental end (optional)
            already_reserved: The order being re-priced already holds one usage slot
            now: Clock override, defaults to utcnow

        Returns:
            PromotionValidateResponse; discount_amount is 0 when invalid
        """
        promotion = await find_promotion_by_code(db, code)

        if not promotion:
            return _invalid("Promotion code does not exist")

        if promotion.status != PromotionStatus.ACTIVE:
            return _invalid("Promotion code is no longer active")

        promo_start = naive_utc(promotion.start_date)
        promo_end = naive_utc(promotion.end_date)

        if start_date is not None and end_date is not None:
            rental_start = start_date.date()
            rental_end = end_date.date()
            if rental_start > promo_end.date() or rental_end < promo_start.date():
                return _invalid(
                    f"Promotion code only applies from {promo_start:%d/%m/%Y} to {promo_end:%d/%m/%Y}"
                )
        else:
            current = naive_utc(now) or datetime.utcnow()
            if current < promo_start or current > promo_end:
                return _invalid("Promotion code is outside its validity period")

        if promotion.min_amount is not None and sub_total < promotion.min_amount:
            return _invalid(f"Order value must be at least {promotion.min_amount:,.0f}")

        used = promotion.used_count - (1 if already_reserved else 0)
        if promotion.usage_limit is not None and used >= promotion.usage_limit:
            return _invalid("Promotion code has reached its usage limit")

        discount = calculate_discount(promotion.type, promotion.value, sub_total, promotion.max_discount)

        return PromotionValidateResponse(
            is_valid=True,
            message="Promotion code is valid",
            discount_amount=discount,
            promotion=PromotionResponse.model_validate(promotion)
        )
