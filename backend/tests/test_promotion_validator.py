"""
Promotion validation and discount tests.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from sqlalchemy import select

from backend.app.models.promotion import Promotion
from backend.app.models.billing_enums import PromotionType, PromotionStatus
from backend.app.domain.rental.promotion_validator import PromotionValidator, calculate_discount
from backend.app.domain.rental.promotion_service import reserve_promotion_usage, release_promotion_usage


def test_percentage_discount_is_capped_at_max_discount():
    discount = calculate_discount(
        PromotionType.PERCENTAGE, Decimal("10"), Decimal("1500000"), Decimal("50000")
    )
    assert discount == Decimal("50000.00")


def test_percentage_discount_without_cap():
    discount = calculate_discount(PromotionType.PERCENTAGE, Decimal("10"), Decimal("300000"))
    assert discount == Decimal("30000.00")


def test_fixed_discount_never_exceeds_subtotal():
    assert calculate_discount(PromotionType.FIXED_AMOUNT, Decimal("100000"), Decimal("80000")) == Decimal("80000.00")
    assert calculate_discount(PromotionType.FIXED_AMOUNT, Decimal("100000"), Decimal("500000")) == Decimal("100000.00")


def test_percentage_discount_rounds_half_up():
    discount = calculate_discount(PromotionType.PERCENTAGE, Decimal("12.5"), Decimal("0.5"))
    assert discount == Decimal("0.06")


async def _used_count(db, code):
    result = await db.execute(select(Promotion.used_count).where(Promotion.code == code))
    return result.scalar_one()


async def test_valid_percentage_code(db_session, seeded, rental_window):
    start, end = rental_window
    result = await PromotionValidator.validate(db_session, "SUMMER10", Decimal("1500000"), start, end)

    assert result.is_valid is True
    assert result.discount_amount == Decimal("50000.00")
    assert result.promotion.code == "SUMMER10"


async def test_unknown_code(db_session, seeded):
    result = await PromotionValidator.validate(db_session, "NOPE", Decimal("1500000"))

    assert result.is_valid is False
    assert result.message == "Promotion code does not exist"
    assert result.discount_amount == Decimal("0")


async def test_inactive_code(db_session, seeded):
    promotion = await db_session.get(Promotion, seeded["percentage_promotion"].id)
    promotion.status = PromotionStatus.INACTIVE
    await db_session.flush()

    result = await PromotionValidator.validate(db_session, "SUMMER10", Decimal("1500000"))

    assert result.is_valid is False
    assert "no longer active" in result.message


async def test_rental_period_outside_promotion_window(db_session, seeded):
    start = datetime.utcnow() + timedelta(days=400)
    result = await PromotionValidator.validate(
        db_session, "SUMMER10", Decimal("1500000"), start, start + timedelta(days=2)
    )

    assert result.is_valid is False
    assert result.message.startswith("Promotion code only applies from")


async def test_rental_overlapping_window_edge_is_accepted(db_session, seeded):
    promotion = seeded["percentage_promotion"]
    # Rental ends on the promotion's first day
    end = promotion.start_date
    result = await PromotionValidator.validate(
        db_session, "SUMMER10", Decimal("1000000"), end - timedelta(days=3), end
    )

    assert result.is_valid is True


async def test_without_rental_dates_now_must_be_in_window(db_session, seeded):
    result = await PromotionValidator.validate(
        db_session, "SUMMER10", Decimal("1500000"), now=datetime.utcnow() + timedelta(days=500)
    )
    assert result.is_valid is False
    assert "validity period" in result.message

    result = await PromotionValidator.validate(db_session, "SUMMER10", Decimal("1500000"))
    assert result.is_valid is True


async def test_minimum_order_value(db_session, seeded, rental_window):
    start, end = rental_window
    result = await PromotionValidator.validate(db_session, "WELCOME100K", Decimal("999999"), start, end)

    assert result.is_valid is False
    assert "at least 1,000,000" in result.message


async def test_usage_limit_reached(db_session, seeded, rental_window):
    start, end = rental_window
    assert await reserve_promotion_usage(db_session, "WELCOME100K") is True

    result = await PromotionValidator.validate(db_session, "WELCOME100K", Decimal("1500000"), start, end)
    assert result.is_valid is False
    assert "usage limit" in result.message

    # The order holding the slot may still use it
    result = await PromotionValidator.validate(
        db_session, "WELCOME100K", Decimal("1500000"), start, end, already_reserved=True
    )
    assert result.is_valid is True
    assert result.discount_amount == Decimal("100000.00")


async def test_validation_does_not_consume_usage(db_session, seeded, rental_window):
    start, end = rental_window
    for _ in range(3):
        await PromotionValidator.validate(db_session, "WELCOME100K", Decimal("1500000"), start, end)

    assert await _used_count(db_session, "WELCOME100K") == 0


async def test_reserve_stops_at_limit_and_release_gives_back(db_session, seeded):
    assert await reserve_promotion_usage(db_session, "WELCOME100K") is True
    assert await reserve_promotion_usage(db_session, "WELCOME100K") is False
    assert await _used_count(db_session, "WELCOME100K") == 1

    await release_promotion_usage(db_session, "WELCOME100K")
    await release_promotion_usage(db_session, "WELCOME100K")
    assert await _used_count(db_session, "WELCOME100K") == 0
