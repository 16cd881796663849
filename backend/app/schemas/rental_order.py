"""
Rental Order Schemas.

Defines request and response models for the rental workflow.
"""

from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from decimal import Decimal
from typing import Optional
from backend.app.models.rental_enums import RentalStatus
from backend.app.schemas.common import Money


class RentalOrderBase(BaseModel):
    customer_id: int
    vehicle_id: int
    start_date: datetime
    end_date: datetime
    pickup_location: str = Field(..., min_length=1, max_length=255)
    return_location: str = Field(..., min_length=1, max_length=255)
    promotion_code: Optional[str] = Field(None, max_length=50)
    deposit_amount: Decimal = Field(Decimal("0"), ge=0)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date.date() < self.start_date.date():
            raise ValueError("end_date must not be before start_date")
        return self


class RentalOrderCreate(RentalOrderBase):
    """Schema for creating a rental order (DRAFT or CONFIRMED)."""
    employee_id: Optional[int] = None
    status: RentalStatus = RentalStatus.DRAFT


class RentalOrderUpdate(RentalOrderBase):
    """Schema for editing a DRAFT rental order."""


class CompleteRentalRequest(BaseModel):
    actual_end_date: Optional[datetime] = None
    return_location: Optional[str] = Field(None, max_length=255)


class CancelRentalRequest(BaseModel):
    reason: Optional[str] = None


class CalculatePriceRequest(BaseModel):
    vehicle_id: int
    start_date: datetime
    end_date: datetime
    promotion_code: Optional[str] = None


class PriceQuote(BaseModel):
    """Price breakdown for a vehicle over a date range."""
    daily_rental_price: Money
    total_days: int
    sub_total: Money
    discount_amount: Money
    total_amount: Money
    promotion_message: Optional[str] = None
    promotion_applied: bool = False


class RentalOrderResponse(BaseModel):
    """Schema for rental order response."""
    id: int
    order_number: str
    customer_id: int
    vehicle_id: int
    employee_id: Optional[int]
    start_date: datetime
    end_date: datetime
    actual_start_date: Optional[datetime]
    actual_end_date: Optional[datetime]
    pickup_location: str
    return_location: str
    daily_rental_price: float
    total_days: int
    subtotal: float
    discount_amount: float
    promotion_code: Optional[str]
    total_amount: float
    deposit_amount: float
    status: RentalStatus
    notes: Optional[str]
    created_by: Optional[str]
    updated_by: Optional[str]
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class RentalStatusHistoryResponse(BaseModel):
    id: int
    rental_order_id: int
    old_status: Optional[RentalStatus]
    new_status: RentalStatus
    changed_at: datetime
    changed_by: Optional[str]
    notes: Optional[str]
    
    class Config:
        from_attributes = True
