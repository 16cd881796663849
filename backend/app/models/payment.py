"""
Payment database model.

A (possibly partial) payment against an invoice.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, Enum, ForeignKey, Text
from backend.app.db.session import Base
from backend.app.models.billing_enums import PaymentMethod


class Payment(Base):
    """
    Payment model.
    
    The sum of live payment amounts for an invoice never exceeds the
    invoice total; PaymentService checks this on every create/update.
    """
    __tablename__ = "payments"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    payment_number = Column(String(20), unique=True, nullable=False, index=True)  # PT{yyyyMMdd}{seq:03}
    invoice_id = Column(Integer, ForeignKey('invoices.id'), nullable=False, index=True)
    
    payment_date = Column(DateTime(timezone=True), nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    bank_account = Column(String(100), nullable=True)
    transaction_code = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    
    # Audit
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    def __repr__(self):
        return f"<Payment(id={self.id}, number='{self.payment_number}', amount={self.amount})>"
