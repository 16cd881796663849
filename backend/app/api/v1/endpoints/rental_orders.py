"""
Rental Order API Endpoints.

Staff create, price and drive rental orders through their lifecycle.
Each endpoint commits once; notifications go out after the commit.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Path, Body, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.config import settings
from backend.app.core.redis_client import get_redis
from backend.app.core.dependencies import get_current_user, get_actor
from backend.app.core.guards import require_role, STAFF_ROLES
from backend.app.models.rental_enums import RentalStatus
from backend.app.models.vehicle import Vehicle
from backend.app.schemas.common import ApiResponse, PageResponse
from backend.app.schemas.rental_order import (
    RentalOrderCreate, RentalOrderUpdate, RentalOrderResponse, RentalStatusHistoryResponse,
    CompleteRentalRequest, CancelRentalRequest, CalculatePriceRequest, PriceQuote
)
from backend.app.domain.rental.rental_order_service import RentalOrderService
from backend.app.domain.rental.pricing_calculator import PricingCalculator
from backend.app.services.notification_service import NotificationService

router = APIRouter(prefix="/rental-orders", tags=["Rental Orders"])


async def _notify(redis, db: AsyncSession, order, vehicle_changed: bool = False) -> None:
    await NotificationService.rental_order_changed(redis, order)
    if vehicle_changed:
        vehicle = await db.get(Vehicle, order.vehicle_id)
        await NotificationService.vehicle_changed(redis, vehicle)


def _respond(order, message: str) -> ApiResponse[RentalOrderResponse]:
    return ApiResponse(data=RentalOrderResponse.model_validate(order), message=message)


@router.post("/calculate-price", response_model=ApiResponse[PriceQuote])
async def calculate_price(
    request: CalculatePriceRequest = Body(...),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Quote a rental without saving anything.

    An invalid promotion does not fail the quote; `promotion_message` says why it was not applied.
    """
    quote = await PricingCalculator.calculate_price(
        db,
        request.vehicle_id,
        request.start_date,
        request.end_date,
        request.promotion_code
    )
    return ApiResponse(data=quote)


@router.post("", response_model=ApiResponse[RentalOrderResponse], status_code=status.HTTP_201_CREATED)
async def create_rental_order(
    order_in: RentalOrderCreate = Body(...),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Create a rental order as DRAFT or CONFIRMED.

    CONFIRMED requires an AVAILABLE vehicle and marks it RENTED.
    """
    order = await RentalOrderService.create_order(db, order_in, actor=get_actor(current_user))
    await db.commit()

    await _notify(redis, db, order, vehicle_changed=order.status == RentalStatus.CONFIRMED)
    return _respond(order, f"Rental order {order.order_number} created")


@router.get("", response_model=ApiResponse[PageResponse[RentalOrderResponse]])
async def list_rental_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=100),
    status_filter: Optional[RentalStatus] = Query(None, alias="status"),
    customer_id: Optional[int] = Query(None),
    vehicle_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    sort_by: str = Query("created_at"),
    sort_desc: bool = Query(True),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List rental orders (paged, filterable, searchable)."""
    orders, total = await RentalOrderService.list_orders(
        db, page=page, page_size=page_size, status=status_filter,
        customer_id=customer_id, vehicle_id=vehicle_id, search=search,
        sort_by=sort_by, sort_desc=sort_desc
    )
    return ApiResponse(data=PageResponse(
        items=[RentalOrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        page_size=page_size
    ))


@router.get("/{order_id}", response_model=ApiResponse[RentalOrderResponse])
async def get_rental_order(
    order_id: int = Path(..., description="Rental order ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    order = await RentalOrderService.get_order(db, order_id)
    return ApiResponse(data=RentalOrderResponse.model_validate(order))


@router.put("/{order_id}", response_model=ApiResponse[RentalOrderResponse])
async def update_rental_order(
    order_id: int = Path(..., description="Rental order ID"),
    order_in: RentalOrderUpdate = Body(...),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """Edit a DRAFT order; the price is recalculated."""
    order = await RentalOrderService.update_order(db, order_id, order_in, actor=get_actor(current_user))
    await db.commit()

    await _notify(redis, db, order)
    return _respond(order, f"Rental order {order.order_number} updated")


@router.delete("/{order_id}", response_model=ApiResponse)
async def delete_rental_order(
    order_id: int = Path(..., description="Rental order ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Delete a DRAFT or CANCELLED order."""
    await RentalOrderService.delete_order(db, order_id, actor=get_actor(current_user))
    await db.commit()
    return ApiResponse(message="Rental order deleted")


@router.get("/{order_id}/history", response_model=ApiResponse[List[RentalStatusHistoryResponse]])
async def get_rental_order_history(
    order_id: int = Path(..., description="Rental order ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Status history, newest first."""
    history = await RentalOrderService.get_history(db, order_id)
    return ApiResponse(data=[RentalStatusHistoryResponse.model_validate(h) for h in history])


@router.post("/{order_id}/confirm", response_model=ApiResponse[RentalOrderResponse])
async def confirm_rental_order(
    order_id: int = Path(..., description="Rental order ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    order = await RentalOrderService.confirm_order(db, order_id, actor=get_actor(current_user))
    await db.commit()

    await _notify(redis, db, order)
    return _respond(order, f"Rental order {order.order_number} confirmed")


@router.post("/{order_id}/start", response_model=ApiResponse[RentalOrderResponse])
async def start_rental_order(
    order_id: int = Path(..., description="Rental order ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """Hand the vehicle over: CONFIRMED -> IN_PROGRESS, vehicle RENTED."""
    order = await RentalOrderService.start_order(db, order_id, actor=get_actor(current_user))
    await db.commit()

    await _notify(redis, db, order, vehicle_changed=True)
    return _respond(order, f"Rental order {order.order_number} started")


@router.post("/{order_id}/complete", response_model=ApiResponse[RentalOrderResponse])
async def complete_rental_order(
    order_id: int = Path(..., description="Rental order ID"),
    request: Optional[CompleteRentalRequest] = Body(None),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """Take the vehicle back: IN_PROGRESS -> COMPLETED, vehicle AVAILABLE."""
    order = await RentalOrderService.complete_order(db, order_id, request, actor=get_actor(current_user))
    await db.commit()

    await _notify(redis, db, order, vehicle_changed=True)
    return _respond(order, f"Rental order {order.order_number} completed")


@router.post("/{order_id}/cancel", response_model=ApiResponse[RentalOrderResponse])
async def cancel_rental_order(
    order_id: int = Path(..., description="Rental order ID"),
    request: Optional[CancelRentalRequest] = Body(None),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    reason = request.reason if request else None
    order = await RentalOrderService.get_order(db, order_id)
    vehicle = await db.get(Vehicle, order.vehicle_id)
    version_before = vehicle.version

    order = await RentalOrderService.cancel_order(db, order_id, reason=reason, actor=get_actor(current_user))
    await db.commit()

    # Only CONFIRMED/IN_PROGRESS orders that still hold the vehicle release it
    await _notify(redis, db, order, vehicle_changed=vehicle.version != version_before)
    return _respond(order, f"Rental order {order.order_number} cancelled")
