"""
Vehicle Schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from backend.app.models.rental_enums import VehicleStatus, VehicleHistoryAction, HistoryReferenceType


class VehicleResponse(BaseModel):
    id: int
    code: str
    model: str
    daily_rental_price: float
    status: VehicleStatus
    current_location: Optional[str]
    updated_at: datetime
    
    class Config:
        from_attributes = True


class VehicleHistoryResponse(BaseModel):
    id: int
    vehicle_id: int
    action_type: VehicleHistoryAction
    old_status: Optional[VehicleStatus]
    new_status: Optional[VehicleStatus]
    reference_type: Optional[HistoryReferenceType]
    reference_id: Optional[int]
    description: Optional[str]
    created_by: Optional[str]
    created_at: datetime
    
    class Config:
        from_attributes = True
