"""
Pricing Calculator.

daily rate x inclusive day count, minus an optional promotion discount.
An unusable promotion never blocks pricing; it just applies nothing.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import BusinessRuleViolationError
from backend.app.schemas.rental_order import PriceQuote
from backend.app.domain.rental.lookups import get_vehicle
from backend.app.domain.rental.promotion_validator import PromotionValidator
from backend.app.domain.values import to_money, ZERO


def count_rental_days(start_date: datetime, end_date: datetime) -> int:
    """Calendar days covered by the rental, both ends included."""
    return (end_date.date() - start_date.date()).days + 1


class PricingCalculator:

    @staticmethod
    async def calculate_price(
        db: AsyncSession,
        vehicle_id: int,
        start_date: datetime,
        end_date: datetime,
        promotion_code: Optional[str] = None,
        promotion_reserved: bool = False
    ) -> PriceQuote:
        """
        Price a rental.

        Args:
            db: Database session
            vehicle_id: Vehicle to rent
            start_date: Planned start
            end_date: Planned end
            promotion_code: Optional promotion code
            promotion_reserved: The order being re-priced already holds a slot for this code

        Returns:
            PriceQuote with subtotal, discount and total

        Raises:
            ResourceNotFoundError: Vehicle missing or deleted
            BusinessRuleViolationError: end_date before start_date
        """
        vehicle = await get_vehicle(db, vehicle_id)

        total_days = count_rental_days(start_date, end_date)
        if total_days < 1:
            raise BusinessRuleViolationError(
                "End date must not be before start date",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()}
            )

        daily_rate = to_money(vehicle.daily_rental_price)
        sub_total = to_money(daily_rate * total_days)
        discount = ZERO
        message = None
        applied = False

        if promotion_code and promotion_code.strip():
            result = await PromotionValidator.validate(
                db, promotion_code, sub_total, start_date, end_date,
                already_reserved=promotion_reserved
            )
            message = result.message
            if result.is_valid:
                discount = result.discount_amount
                applied = True

        return PriceQuote(
            daily_rental_price=daily_rate,
            total_days=total_days,
            sub_total=sub_total,
            discount_amount=to_money(discount),
            total_amount=to_money(sub_total - discount),
            promotion_message=message,
            promotion_applied=applied
        )
