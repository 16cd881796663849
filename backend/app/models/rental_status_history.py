"""
Rental Status History database model.

Append-only: one row per status change of a rental order.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, Text
from backend.app.db.session import Base
from backend.app.models.rental_enums import RentalStatus


class RentalStatusHistory(Base):
    """
    Rental status change record.
    
    old_status is NULL for the row written when the order is created.
    NO updates or deletions allowed.
    """
    __tablename__ = "rental_status_history"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    rental_order_id = Column(Integer, ForeignKey('rental_orders.id'), nullable=False, index=True)
    
    old_status = Column(Enum(RentalStatus), nullable=True)
    new_status = Column(Enum(RentalStatus), nullable=False)
    
    changed_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False, index=True)
    changed_by = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    
    def __repr__(self):
        old = self.old_status.value if self.old_status else None
        return f"<RentalStatusHistory(order={self.rental_order_id}, {old} -> {self.new_status.value})>"
