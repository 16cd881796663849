"""
Billing Schemas: invoices and payments.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from backend.app.models.billing_enums import InvoiceStatus, PaymentMethod


class InvoiceFromRentalRequest(BaseModel):
    """Schema for invoicing a completed rental order."""
    tax_rate: Decimal = Field(Decimal("0"), ge=0, le=100)
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    discount_amount: Decimal = Field(Decimal("0"), ge=0)
    notes: Optional[str] = None


class InvoiceUpdate(BaseModel):
    """Schema for editing an invoice that is not PAID or CANCELLED."""
    invoice_date: date
    due_date: date
    tax_rate: Decimal = Field(..., ge=0, le=100)
    discount_amount: Decimal = Field(Decimal("0"), ge=0)
    notes: Optional[str] = None


class InvoiceDetailResponse(BaseModel):
    id: int
    description: str
    quantity: float
    unit_price: float
    amount: float
    sort_order: int
    
    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    """Schema for displaying an invoice."""
    id: int
    invoice_number: str
    rental_order_id: int
    customer_id: int
    invoice_date: date
    due_date: date
    sub_total: float
    tax_rate: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    paid_amount: float
    remaining_amount: float
    status: InvoiceStatus
    notes: Optional[str]
    details: List[InvoiceDetailResponse] = []
    created_by: Optional[str]
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class PaymentBase(BaseModel):
    payment_date: datetime
    amount: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod
    bank_account: Optional[str] = Field(None, max_length=100)
    transaction_code: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


class PaymentCreate(PaymentBase):
    """Schema for recording a payment."""
    invoice_id: int


class PaymentUpdate(PaymentBase):
    """Schema for correcting a payment."""


class PaymentResponse(BaseModel):
    """Schema for displaying a payment."""
    id: int
    payment_number: str
    invoice_id: int
    payment_date: datetime
    amount: float
    payment_method: PaymentMethod
    bank_account: Optional[str]
    transaction_code: Optional[str]
    notes: Optional[str]
    created_by: Optional[str]
    created_at: datetime
    
    class Config:
        from_attributes = True
