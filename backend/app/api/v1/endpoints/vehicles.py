"""
Vehicle API Endpoints.

Read-only views of a vehicle's state and its history log.
"""

from typing import List
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user
from backend.app.schemas.common import ApiResponse
from backend.app.schemas.vehicle import VehicleResponse, VehicleHistoryResponse
from backend.app.domain.rental.lookups import get_vehicle
from backend.app.services.history import get_vehicle_history

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


@router.get("/{vehicle_id}", response_model=ApiResponse[VehicleResponse])
async def get_vehicle_detail(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    vehicle = await get_vehicle(db, vehicle_id)
    return ApiResponse(data=VehicleResponse.model_validate(vehicle))


@router.get("/{vehicle_id}/history", response_model=ApiResponse[List[VehicleHistoryResponse]])
async def get_vehicle_history_log(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    limit: int = Query(100, ge=1, le=500),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Vehicle history, newest first."""
    await get_vehicle(db, vehicle_id)
    history = await get_vehicle_history(db, vehicle_id, limit=limit)
    return ApiResponse(data=[VehicleHistoryResponse.model_validate(h) for h in history])
