"""
Rental Order database model.

Lifecycle: DRAFT -> CONFIRMED -> IN_PROGRESS -> COMPLETED -> INVOICED,
with CANCELLED reachable from any non-terminal status.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, Enum, ForeignKey, Text
from backend.app.db.session import Base
from backend.app.models.rental_enums import RentalStatus


class RentalOrder(Base):
    """
    Rental Order model.
    
    Invariants:
    - total_amount = subtotal - discount_amount
    - total_days = (end_date.date() - start_date.date()).days + 1
    
    Status is only changed through RentalOrderService transitions.
    Soft-deleted orders are invisible to every query.
    """
    __tablename__ = "rental_orders"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_number = Column(String(20), unique=True, nullable=False, index=True)  # RO{yyyyMMdd}{seq:03}
    
    # Parties
    customer_id = Column(Integer, ForeignKey('customers.id'), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey('employees.id'), nullable=True, index=True)
    
    # Schedule
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    actual_start_date = Column(DateTime(timezone=True), nullable=True)
    actual_end_date = Column(DateTime(timezone=True), nullable=True)
    pickup_location = Column(String(255), nullable=False)
    return_location = Column(String(255), nullable=False)
    
    # Pricing snapshot
    daily_rental_price = Column(Numeric(18, 2), nullable=False)
    total_days = Column(Integer, nullable=False)
    subtotal = Column(Numeric(18, 2), nullable=False)
    discount_amount = Column(Numeric(18, 2), nullable=False, default=0)
    promotion_code = Column(String(50), nullable=True)
    total_amount = Column(Numeric(18, 2), nullable=False)
    deposit_amount = Column(Numeric(18, 2), nullable=False, default=0)
    
    status = Column(Enum(RentalStatus), default=RentalStatus.DRAFT, nullable=False, index=True)
    notes = Column(Text, nullable=True)
    
    # Audit
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    def __repr__(self):
        return f"<RentalOrder(id={self.id}, number='{self.order_number}', status='{self.status.value}')>"
