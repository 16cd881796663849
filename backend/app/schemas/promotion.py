"""
Promotion Schemas.
"""

from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from decimal import Decimal
from typing import Optional
from backend.app.models.billing_enums import PromotionType, PromotionStatus
from backend.app.schemas.common import Money


class PromotionBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: PromotionType
    value: Decimal = Field(..., gt=0)
    min_amount: Optional[Decimal] = Field(None, ge=0)
    max_discount: Optional[Decimal] = Field(None, gt=0)
    start_date: datetime
    end_date: datetime
    usage_limit: Optional[int] = Field(None, ge=0)
    status: PromotionStatus = PromotionStatus.ACTIVE

    @model_validator(mode="after")
    def check_window(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        if self.type == PromotionType.PERCENTAGE and self.value > 100:
            raise ValueError("percentage promotions cannot exceed 100")
        return self


class PromotionCreate(PromotionBase):
    """Schema for creating a promotion."""
    code: str = Field(..., min_length=1, max_length=50)


class PromotionUpdate(PromotionBase):
    """Schema for updating a promotion (code is immutable)."""


class PromotionResponse(BaseModel):
    """Schema for displaying a promotion."""
    id: int
    code: str
    name: str
    type: PromotionType
    value: float
    min_amount: Optional[float]
    max_discount: Optional[float]
    start_date: datetime
    end_date: datetime
    usage_limit: Optional[int]
    used_count: int
    status: PromotionStatus
    created_at: datetime
    
    class Config:
        from_attributes = True


class PromotionValidateRequest(BaseModel):
    """Check a code against a candidate order."""
    promotion_code: str = Field(..., min_length=1)
    sub_total: Decimal = Field(..., ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class PromotionValidateResponse(BaseModel):
    """Result of a promotion check. discount_amount is 0 when invalid."""
    is_valid: bool
    message: str
    discount_amount: Money = Decimal("0")
    promotion: Optional[PromotionResponse] = None
