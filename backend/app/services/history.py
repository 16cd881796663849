"""
History log service.

Append-only writers and readers for rental status history and vehicle history.
"""

from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc

from backend.app.models.rental_status_history import RentalStatusHistory
from backend.app.models.vehicle_history import VehicleHistory
from backend.app.models.rental_enums import (
    RentalStatus, VehicleStatus, VehicleHistoryAction, HistoryReferenceType
)


async def record_status_change(
    db: AsyncSession,
    rental_order_id: int,
    old_status: Optional[RentalStatus],
    new_status: RentalStatus,
    notes: Optional[str] = None,
    changed_by: Optional[str] = None
) -> RentalStatusHistory:
    """
    Append one status history row for a rental order.
    
    Args:
        db: Database session (caller commits)
        rental_order_id: Order whose status changed
        old_status: Previous status, None when the order is created
        new_status: Status after the transition
        notes: Human-readable note (cancel reason, invoice number, ...)
        changed_by: Acting username
    
    Returns:
        Created RentalStatusHistory row
    """
    entry = RentalStatusHistory(
        rental_order_id=rental_order_id,
        old_status=old_status,
        new_status=new_status,
        notes=notes,
        changed_by=changed_by
    )
    db.add(entry)
    await db.flush()
    return entry


async def record_vehicle_event(
    db: AsyncSession,
    vehicle_id: int,
    action: VehicleHistoryAction,
    old_status: Optional[VehicleStatus],
    new_status: Optional[VehicleStatus],
    reference_type: Optional[HistoryReferenceType] = None,
    reference_id: Optional[int] = None,
    description: Optional[str] = None,
    created_by: Optional[str] = None
) -> VehicleHistory:
    """
    Append one vehicle history row.
    
    Raises:
        ValueError: If only one half of the (reference_type, reference_id) pair is given
    """
    if (reference_type is None) != (reference_id is None):
        raise ValueError("reference_type and reference_id must be given together")
    
    entry = VehicleHistory(
        vehicle_id=vehicle_id,
        action_type=action,
        old_status=old_status,
        new_status=new_status,
        reference_type=reference_type,
        reference_id=reference_id,
        description=description,
        created_by=created_by
    )
    db.add(entry)
    await db.flush()
    return entry


async def get_status_history(db: AsyncSession, rental_order_id: int) -> List[RentalStatusHistory]:
    """Status history of an order, most recent first."""
    result = await db.execute(
        select(RentalStatusHistory)
        .where(RentalStatusHistory.rental_order_id == rental_order_id)
        .order_by(desc(RentalStatusHistory.changed_at), desc(RentalStatusHistory.id))
    )
    return list(result.scalars().all())


async def get_vehicle_history(db: AsyncSession, vehicle_id: int, limit: int = 100) -> List[VehicleHistory]:
    """Vehicle history, most recent first."""
    result = await db.execute(
        select(VehicleHistory)
        .where(VehicleHistory.vehicle_id == vehicle_id)
        .order_by(desc(VehicleHistory.created_at), desc(VehicleHistory.id))
        .limit(limit)
    )
    return list(result.scalars().all())
