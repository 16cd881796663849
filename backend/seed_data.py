"""
Database seeding script for reference data.

Creates a demo customer, employee, vehicles and promotions so the rental
workflow can be exercised right after the database is set up.
Safe to run repeatedly.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from sqlalchemy import select

from backend.app.db.session import AsyncSessionLocal
from backend.app.models.customer import Customer
from backend.app.models.employee import Employee
from backend.app.models.vehicle import Vehicle
from backend.app.models.promotion import Promotion
from backend.app.models.rental_enums import VehicleStatus
from backend.app.models.billing_enums import PromotionType, PromotionStatus
from backend.app.core.observability import configure_logging

logger = logging.getLogger("drivenow.seed")


async def _get_or_create(db, entity, code: str, **fields):
    result = await db.execute(select(entity).where(entity.code == code))
    instance = result.scalars().first()
    if instance:
        return instance, False

    instance = entity(code=code, **fields)
    db.add(instance)
    return instance, True


async def seed_reference_data(db) -> dict:
    """
    Seed reference rows (idempotent, flushes but does not commit).

    Creates:
    - Customer KH001 and employee NV001
    - Vehicles 30A-12345 (500,000/day), 51G-67890 (800,000/day), 29C-11111 (in MAINTENANCE)
    - Promotions SUMMER10 (10%, max 50,000) and WELCOME100K (100,000 off, one use)

    Returns:
        Dict of the seeded rows keyed by role
    """
    now = datetime.utcnow()
    created = 0

    customer, is_new = await _get_or_create(
        db, Customer, "KH001",
        full_name="Nguyen Van An",
        email="an.nguyen@example.com",
        phone="0901234567",
        address="12 Le Loi, District 1, Ho Chi Minh City",
        identity_card="079123456789"
    )
    created += is_new

    employee, is_new = await _get_or_create(
        db, Employee, "NV001",
        full_name="Tran Thi Binh",
        email="binh.tran@drivenow.vn",
        phone="0912345678",
        position="Rental counter"
    )
    created += is_new

    sedan, is_new = await _get_or_create(
        db, Vehicle, "30A-12345",
        model="Toyota Vios",
        daily_rental_price=Decimal("500000"),
        status=VehicleStatus.AVAILABLE,
        current_location="Ha Noi Depot"
    )
    created += is_new

    suv, is_new = await _get_or_create(
        db, Vehicle, "51G-67890",
        model="Toyota Fortuner",
        daily_rental_price=Decimal("800000"),
        status=VehicleStatus.AVAILABLE,
        current_location="Ho Chi Minh Depot"
    )
    created += is_new

    workshop, is_new = await _get_or_create(
        db, Vehicle, "29C-11111",
        model="Kia Morning",
        daily_rental_price=Decimal("350000"),
        status=VehicleStatus.MAINTENANCE,
        current_location="Ha Noi Workshop"
    )
    created += is_new

    summer, is_new = await _get_or_create(
        db, Promotion, "SUMMER10",
        name="Summer 10% off",
        type=PromotionType.PERCENTAGE,
        value=Decimal("10"),
        min_amount=Decimal("0"),
        max_discount=Decimal("50000"),
        start_date=now - timedelta(days=30),
        end_date=now + timedelta(days=365),
        usage_limit=None,
        used_count=0,
        status=PromotionStatus.ACTIVE
    )
    created += is_new

    welcome, is_new = await _get_or_create(
        db, Promotion, "WELCOME100K",
        name="Welcome 100,000 off",
        type=PromotionType.FIXED_AMOUNT,
        value=Decimal("100000"),
        min_amount=Decimal("1000000"),
        max_discount=None,
        start_date=now - timedelta(days=30),
        end_date=now + timedelta(days=365),
        usage_limit=1,
        used_count=0,
        status=PromotionStatus.ACTIVE
    )
    created += is_new

    await db.flush()
    logger.info("Reference data seeded (%d new rows)", created)

    return {
        "customer": customer,
        "employee": employee,
        "vehicle": sedan,
        "suv": suv,
        "maintenance_vehicle": workshop,
        "percentage_promotion": summer,
        "fixed_promotion": welcome,
    }


async def main():
    async with AsyncSessionLocal() as db:
        await seed_reference_data(db)
        await db.commit()


if __name__ == "__main__":
    configure_logging()
    asyncio.run(main())
