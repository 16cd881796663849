"""
Rental Order Service (Domain Logic).

Owns the rental order lifecycle:

    DRAFT -> CONFIRMED -> IN_PROGRESS -> COMPLETED -> INVOICED
    DRAFT | CONFIRMED | IN_PROGRESS | COMPLETED -> CANCELLED

Every transition appends exactly one status history row and applies the
vehicle side effects in the same unit of work. Methods only flush; the
caller commits.
"""

import logging
from datetime import datetime
from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from backend.app.core.exceptions import InvalidStateError, BusinessRuleViolationError
from backend.app.models.rental_order import RentalOrder
from backend.app.models.customer import Customer
from backend.app.models.vehicle import Vehicle
from backend.app.models.rental_status_history import RentalStatusHistory
from backend.app.models.vehicle_history import VehicleHistory
from backend.app.models.rental_enums import (
    RentalStatus, VehicleStatus, VehicleHistoryAction, HistoryReferenceType, OUT_OF_CIRCULATION
)
from backend.app.schemas.rental_order import (
    RentalOrderCreate, RentalOrderUpdate, CompleteRentalRequest, PriceQuote
)
from backend.app.services.document_numbers import next_document_number, RENTAL_ORDER_PREFIX
from backend.app.services.history import record_status_change, record_vehicle_event, get_status_history
from backend.app.domain.rental.lookups import get_vehicle, get_customer, get_employee, get_rental_order
from backend.app.domain.rental.pricing_calculator import PricingCalculator
from backend.app.domain.rental.promotion_service import reserve_promotion_usage, release_promotion_usage
from backend.app.domain.values import to_money, naive_utc

logger = logging.getLogger("drivenow.rentals")

CANCELLABLE_STATUSES = (
    RentalStatus.DRAFT, RentalStatus.CONFIRMED, RentalStatus.IN_PROGRESS, RentalStatus.COMPLETED
)
DELETABLE_STATUSES = (RentalStatus.DRAFT, RentalStatus.CANCELLED)

SORTABLE_COLUMNS = {
    "order_number": RentalOrder.order_number,
    "start_date": RentalOrder.start_date,
    "end_date": RentalOrder.end_date,
    "total_amount": RentalOrder.total_amount,
    "status": RentalOrder.status,
    "created_at": RentalOrder.created_at,
}


def _without_promotion(quote: PriceQuote, message: str) -> PriceQuote:
    return quote.model_copy(update={
        "discount_amount": to_money(0),
        "total_amount": quote.sub_total,
        "promotion_message": message,
        "promotion_applied": False,
    })


async def _claim_promotion(
    db: AsyncSession,
    requested_code: Optional[str],
    quote: PriceQuote,
    held_code: Optional[str] = None
) -> Tuple[Optional[str], PriceQuote]:
    """
    Settle which promotion the order ends up holding.

    Releases `held_code` if it is no longer the applied code, and reserves
    a slot for a newly applied one. Losing the race for the last slot
    prices the order without the promotion.
    """
    new_code = requested_code.strip() if quote.promotion_applied and requested_code else None

    if held_code and held_code != new_code:
        await release_promotion_usage(db, held_code)

    if new_code and new_code != held_code:
        if not await reserve_promotion_usage(db, new_code):
            return None, _without_promotion(quote, "Promotion code has reached its usage limit")

    return new_code, quote


async def _other_order_in_progress(db: AsyncSession, vehicle_id: int, order_id: int) -> bool:
    result = await db.execute(
        select(RentalOrder.id).where(
            RentalOrder.vehicle_id == vehicle_id,
            RentalOrder.id != order_id,
            RentalOrder.status == RentalStatus.IN_PROGRESS,
            RentalOrder.is_deleted == False
        )
    )
    return result.first() is not None


async def _rented_under(db: AsyncSession, vehicle_id: int, order_id: int) -> bool:
    """True when the vehicle's latest hand-over was made for this order."""
    result = await db.execute(
        select(VehicleHistory.reference_id)
        .where(
            VehicleHistory.vehicle_id == vehicle_id,
            VehicleHistory.action_type == VehicleHistoryAction.RENTED
        )
        .order_by(VehicleHistory.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none() == order_id


async def _move_vehicle(
    db: AsyncSession,
    vehicle: Vehicle,
    order: RentalOrder,
    new_status: VehicleStatus,
    action: VehicleHistoryAction,
    location: Optional[str],
    description: str,
    actor: Optional[str]
) -> None:
    old_status = vehicle.status
    vehicle.status = new_status
    if location:
        vehicle.current_location = location
    await record_vehicle_event(
        db,
        vehicle_id=vehicle.id,
        action=action,
        old_status=old_status,
        new_status=new_status,
        reference_type=HistoryReferenceType.RENTAL_ORDER,
        reference_id=order.id,
        description=description,
        created_by=actor
    )


class RentalOrderService:

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int) -> RentalOrder:
        return await get_rental_order(db, order_id)

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        status: Optional[RentalStatus] = None,
        customer_id: Optional[int] = None,
        vehicle_id: Optional[int] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_desc: bool = True
    ) -> Tuple[List[RentalOrder], int]:
        """
        Page through live orders.

        `search` matches the order number, customer name or vehicle code.
        Unknown `sort_by` values fall back to created_at.
        """
        query = select(RentalOrder).where(RentalOrder.is_deleted == False)

        if status:
            query = query.where(RentalOrder.status == status)
        if customer_id:
            query = query.where(RentalOrder.customer_id == customer_id)
        if vehicle_id:
            query = query.where(RentalOrder.vehicle_id == vehicle_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = (
                query.join(Customer, Customer.id == RentalOrder.customer_id)
                .join(Vehicle, Vehicle.id == RentalOrder.vehicle_id)
                .where(or_(
                    RentalOrder.order_number.ilike(pattern),
                    Customer.full_name.ilike(pattern),
                    Vehicle.code.ilike(pattern)
                ))
            )

        total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()

        column = SORTABLE_COLUMNS.get(sort_by, RentalOrder.created_at)
        ordering = column.desc() if sort_desc else column.asc()
        result = await db.execute(
            query.order_by(ordering, RentalOrder.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def get_history(db: AsyncSession, order_id: int) -> List[RentalStatusHistory]:
        await get_rental_order(db, order_id)
        return await get_status_history(db, order_id)

    @staticmethod
    async def create_order(
        db: AsyncSession,
        data: RentalOrderCreate,
        actor: Optional[str] = None
    ) -> RentalOrder:
        """
        Create a rental order in DRAFT or CONFIRMED.

        Flow:
        1. Validate parties and initial status
        2. Price the order (promotion applied when valid)
        3. Reserve a promotion slot
        4. Persist with a fresh RO number and the first history row
        5. CONFIRMED: hand the vehicle over (RENTED at the pickup location)

        Raises:
            ResourceNotFoundError: Customer, vehicle or employee missing
            InvalidStateError: CONFIRMED requested for a vehicle that is not AVAILABLE
            BusinessRuleViolationError: Initial status other than DRAFT/CONFIRMED
        """
        # 1. Validate
        if data.status not in (RentalStatus.DRAFT, RentalStatus.CONFIRMED):
            raise BusinessRuleViolationError(
                "A rental order can only be created as DRAFT or CONFIRMED",
                details={"status": data.status.value}
            )

        await get_customer(db, data.customer_id)
        vehicle = await get_vehicle(db, data.vehicle_id)
        if data.employee_id is not None:
            await get_employee(db, data.employee_id)

        if data.status == RentalStatus.CONFIRMED and vehicle.status != VehicleStatus.AVAILABLE:
            raise InvalidStateError(
                "vehicle", vehicle.status, "rent",
                message=f"Vehicle {vehicle.code} is not available (status {vehicle.status.value})"
            )

        start_date = naive_utc(data.start_date)
        end_date = naive_utc(data.end_date)

        # 2. Price on the calendar days the caller asked for
        quote = await PricingCalculator.calculate_price(
            db, vehicle.id, data.start_date, data.end_date, data.promotion_code
        )

        # 3. Promotion slot
        promotion_code, quote = await _claim_promotion(db, data.promotion_code, quote)

        # 4. Persist
        order = RentalOrder(
            order_number=await next_document_number(db, RENTAL_ORDER_PREFIX),
            customer_id=data.customer_id,
            vehicle_id=vehicle.id,
            employee_id=data.employee_id,
            start_date=start_date,
            end_date=end_date,
            pickup_location=data.pickup_location.strip(),
            return_location=data.return_location.strip(),
            daily_rental_price=quote.daily_rental_price,
            total_days=quote.total_days,
            subtotal=quote.sub_total,
            discount_amount=quote.discount_amount,
            promotion_code=promotion_code,
            total_amount=quote.total_amount,
            deposit_amount=to_money(data.deposit_amount),
            status=data.status,
            notes=data.notes,
            created_by=actor,
            updated_by=actor
        )
        db.add(order)
        await db.flush()

        await record_status_change(
            db, order.id, None, order.status, notes="Rental order created", changed_by=actor
        )

        # 5. Hand over
        if order.status == RentalStatus.CONFIRMED:
            await _move_vehicle(
                db, vehicle, order,
                new_status=VehicleStatus.RENTED,
                action=VehicleHistoryAction.RENTED,
                location=order.pickup_location,
                description=f"Rented under order {order.order_number}",
                actor=actor
            )
            await db.flush()

        logger.info(
            "Rental order %s created as %s by %s (total %s)",
            order.order_number, order.status.value, actor, order.total_amount
        )
        return order

    @staticmethod
    async def update_order(
        db: AsyncSession,
        order_id: int,
        data: RentalOrderUpdate,
        actor: Optional[str] = None
    ) -> RentalOrder:
        """
        Edit a DRAFT order and re-price it.

        The promotion slot follows the code: a dropped or changed code gives
        its slot back, a new code takes one.
        """
        order = await get_rental_order(db, order_id)
        if order.status != RentalStatus.DRAFT:
            raise InvalidStateError(
                "rental order", order.status, "edit",
                message=f"Only DRAFT orders can be edited (order is {order.status.value})"
            )

        await get_customer(db, data.customer_id)
        vehicle = await get_vehicle(db, data.vehicle_id)

        start_date = naive_utc(data.start_date)
        end_date = naive_utc(data.end_date)
        held_code = order.promotion_code
        requested = data.promotion_code.strip() if data.promotion_code else None

        quote = await PricingCalculator.calculate_price(
            db, vehicle.id, data.start_date, data.end_date, requested,
            promotion_reserved=bool(held_code) and held_code == requested
        )
        promotion_code, quote = await _claim_promotion(db, requested, quote, held_code=held_code)

        order.customer_id = data.customer_id
        order.vehicle_id = vehicle.id
        order.start_date = start_date
        order.end_date = end_date
        order.pickup_location = data.pickup_location.strip()
        order.return_location = data.return_location.strip()
        order.daily_rental_price = quote.daily_rental_price
        order.total_days = quote.total_days
        order.subtotal = quote.sub_total
        order.discount_amount = quote.discount_amount
        order.promotion_code = promotion_code
        order.total_amount = quote.total_amount
        order.deposit_amount = to_money(data.deposit_amount)
        order.notes = data.notes
        order.updated_by = actor
        await db.flush()

        logger.info("Rental order %s updated by %s", order.order_number, actor)
        return order

    @staticmethod
    async def confirm_order(db: AsyncSession, order_id: int, actor: Optional[str] = None) -> RentalOrder:
        """DRAFT -> CONFIRMED. The vehicle must be AVAILABLE; it is not touched."""
        order = await get_rental_order(db, order_id)
        if order.status != RentalStatus.DRAFT:
            raise InvalidStateError("rental order", order.status, "confirm")

        vehicle = await get_vehicle(db, order.vehicle_id)
        if vehicle.status != VehicleStatus.AVAILABLE:
            raise InvalidStateError(
                "vehicle", vehicle.status, "rent",
                message=f"Vehicle {vehicle.code} is not available (status {vehicle.status.value})"
            )

        order.status = RentalStatus.CONFIRMED
        order.updated_by = actor
        await record_status_change(
            db, order.id, RentalStatus.DRAFT, RentalStatus.CONFIRMED,
            notes="Order confirmed", changed_by=actor
        )

        logger.info("Rental order %s confirmed by %s", order.order_number, actor)
        return order

    @staticmethod
    async def start_order(db: AsyncSession, order_id: int, actor: Optional[str] = None) -> RentalOrder:
        """
        CONFIRMED -> IN_PROGRESS.

        Marks the vehicle RENTED at the pickup location and stamps
        actual_start_date.

        Raises:
            InvalidStateError: Order not CONFIRMED, or vehicle out of circulation
            BusinessRuleViolationError: Another order is already driving the vehicle
        """
        order = await get_rental_order(db, order_id)
        if order.status != RentalStatus.CONFIRMED:
            raise InvalidStateError("rental order", order.status, "start")

        vehicle = await get_vehicle(db, order.vehicle_id)
        if vehicle.status in OUT_OF_CIRCULATION:
            raise InvalidStateError(
                "vehicle", vehicle.status, "rent",
                message=f"Vehicle {vehicle.code} is out of circulation (status {vehicle.status.value})"
            )

        if await _other_order_in_progress(db, vehicle.id, order.id):
            raise BusinessRuleViolationError(
                f"Vehicle {vehicle.code} is already in use by another rental",
                details={"vehicle_id": vehicle.id}
            )

        order.status = RentalStatus.IN_PROGRESS
        order.actual_start_date = datetime.utcnow()
        order.updated_by = actor
        await record_status_change(
            db, order.id, RentalStatus.CONFIRMED, RentalStatus.IN_PROGRESS,
            notes="Vehicle handed over", changed_by=actor
        )
        await _move_vehicle(
            db, vehicle, order,
            new_status=VehicleStatus.RENTED,
            action=VehicleHistoryAction.RENTED,
            location=order.pickup_location,
            description=f"Rental {order.order_number} started",
            actor=actor
        )
        await db.flush()

        logger.info("Rental order %s started by %s", order.order_number, actor)
        return order

    @staticmethod
    async def complete_order(
        db: AsyncSession,
        order_id: int,
        data: Optional[CompleteRentalRequest] = None,
        actor: Optional[str] = None
    ) -> RentalOrder:
        """
        IN_PROGRESS -> COMPLETED.

        The vehicle comes back AVAILABLE at the return location. A return
        location given here overrides the planned one.
        """
        data = data or CompleteRentalRequest()
        order = await get_rental_order(db, order_id)
        if order.status != RentalStatus.IN_PROGRESS:
            raise InvalidStateError("rental order", order.status, "complete")

        vehicle = await get_vehicle(db, order.vehicle_id)

        if data.return_location and data.return_location.strip():
            order.return_location = data.return_location.strip()
        order.actual_end_date = naive_utc(data.actual_end_date) or datetime.utcnow()
        order.status = RentalStatus.COMPLETED
        order.updated_by = actor

        await record_status_change(
            db, order.id, RentalStatus.IN_PROGRESS, RentalStatus.COMPLETED,
            notes="Vehicle returned", changed_by=actor
        )
        await _move_vehicle(
            db, vehicle, order,
            new_status=VehicleStatus.AVAILABLE,
            action=VehicleHistoryAction.RETURNED,
            location=order.return_location,
            description=f"Returned from rental {order.order_number}",
            actor=actor
        )
        await db.flush()

        logger.info("Rental order %s completed by %s", order.order_number, actor)
        return order

    @staticmethod
    async def cancel_order(
        db: AsyncSession,
        order_id: int,
        reason: Optional[str] = None,
        actor: Optional[str] = None
    ) -> RentalOrder:
        """
        Cancel an order that is not yet INVOICED.

        A CONFIRMED or IN_PROGRESS order releases its vehicle back to
        AVAILABLE only when the vehicle is RENTED and its latest hand-over
        was made for this order. The promotion slot is kept.
        """
        order = await get_rental_order(db, order_id)
        if order.status == RentalStatus.CANCELLED:
            raise InvalidStateError(
                "rental order", order.status, "cancel", message="Order is already cancelled"
            )
        if order.status not in CANCELLABLE_STATUSES:
            raise InvalidStateError("rental order", order.status, "cancel")

        old_status = order.status
        order.status = RentalStatus.CANCELLED
        order.updated_by = actor

        note = f"Cancelled: {reason}" if reason else "Cancelled"
        await record_status_change(db, order.id, old_status, RentalStatus.CANCELLED, notes=note, changed_by=actor)

        if old_status in (RentalStatus.CONFIRMED, RentalStatus.IN_PROGRESS):
            vehicle = await get_vehicle(db, order.vehicle_id)
            if (
                vehicle.status == VehicleStatus.RENTED
                and await _rented_under(db, vehicle.id, order.id)
            ):
                await _move_vehicle(
                    db, vehicle, order,
                    new_status=VehicleStatus.AVAILABLE,
                    action=VehicleHistoryAction.RENTAL_CANCELLED,
                    location=None,
                    description=f"Rental {order.order_number} cancelled",
                    actor=actor
                )
        await db.flush()

        logger.info("Rental order %s cancelled by %s (was %s)", order.order_number, actor, old_status.value)
        return order

    @staticmethod
    async def delete_order(db: AsyncSession, order_id: int, actor: Optional[str] = None) -> None:
        """Soft delete a DRAFT or CANCELLED order."""
        order = await get_rental_order(db, order_id)
        if order.status not in DELETABLE_STATUSES:
            raise InvalidStateError(
                "rental order", order.status, "delete",
                message=f"Only DRAFT or CANCELLED orders can be deleted (order is {order.status.value})"
            )

        order.is_deleted = True
        order.updated_by = actor
        await db.flush()

        logger.info("Rental order %s deleted by %s", order.order_number, actor)

    @staticmethod
    async def mark_invoiced(
        db: AsyncSession,
        order: RentalOrder,
        invoice_number: str,
        actor: Optional[str] = None
    ) -> None:
        """COMPLETED -> INVOICED, driven by InvoiceService."""
        order.status = RentalStatus.INVOICED
        order.updated_by = actor
        await record_status_change(
            db, order.id, RentalStatus.COMPLETED, RentalStatus.INVOICED,
            notes=f"Invoice {invoice_number} issued", changed_by=actor
        )

    @staticmethod
    async def reopen_invoiced(
        db: AsyncSession,
        order: RentalOrder,
        invoice_number: str,
        actor: Optional[str] = None
    ) -> None:
        """INVOICED -> COMPLETED when the invoice is deleted."""
        order.status = RentalStatus.COMPLETED
        order.updated_by = actor
        await record_status_change(
            db, order.id, RentalStatus.INVOICED, RentalStatus.COMPLETED,
            notes=f"Invoice {invoice_number} deleted", changed_by=actor
        )
