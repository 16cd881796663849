"""
Invoice and Invoice Detail database models.

One invoice per rental order; payments reduce its remaining balance.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, Boolean, Date, DateTime, Enum, ForeignKey, Text
from sqlalchemy.orm import relationship
from backend.app.db.session import Base
from backend.app.models.billing_enums import InvoiceStatus


class Invoice(Base):
    """
    Invoice model.
    
    Invariants:
    - remaining_amount = total_amount - paid_amount, never below zero
    - status = compute_invoice_status(paid_amount, total_amount, due_date)
      unless CANCELLED
    """
    __tablename__ = "invoices"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    invoice_number = Column(String(20), unique=True, nullable=False, index=True)  # HD{yyyyMMdd}{seq:03}
    
    # Linkage (uniqueness among live invoices is checked by the service)
    rental_order_id = Column(Integer, ForeignKey('rental_orders.id'), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey('customers.id'), nullable=False, index=True)
    
    invoice_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    
    # Financials
    sub_total = Column(Numeric(18, 2), nullable=False)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(18, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(18, 2), nullable=False, default=0)
    total_amount = Column(Numeric(18, 2), nullable=False)
    paid_amount = Column(Numeric(18, 2), nullable=False, default=0)
    remaining_amount = Column(Numeric(18, 2), nullable=False)
    
    status = Column(Enum(InvoiceStatus), default=InvoiceStatus.UNPAID, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    
    details = relationship(
        "InvoiceDetail",
        lazy="selectin",
        order_by="InvoiceDetail.sort_order",
        cascade="all, delete-orphan",
    )
    
    # Audit
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    def __repr__(self):
        return f"<Invoice(id={self.id}, number='{self.invoice_number}', status='{self.status.value}')>"


class InvoiceDetail(Base):
    """Invoice line item."""
    __tablename__ = "invoice_details"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    invoice_id = Column(Integer, ForeignKey('invoices.id'), nullable=False, index=True)
    
    description = Column(String(500), nullable=False)
    quantity = Column(Numeric(18, 2), nullable=False)
    unit_price = Column(Numeric(18, 2), nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    
    def __repr__(self):
        return f"<InvoiceDetail(invoice={self.invoice_id}, amount={self.amount})>"
