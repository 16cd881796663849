"""
Vehicle History database model.

Append-only audit trail of vehicle status changes.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, Text, CheckConstraint
from backend.app.db.session import Base
from backend.app.models.rental_enums import VehicleStatus, VehicleHistoryAction, HistoryReferenceType


class VehicleHistory(Base):
    """
    Vehicle history record.
    
    (reference_type, reference_id) identify the record that caused the
    change, e.g. (RENTAL_ORDER, 42). Both are set or both are NULL.
    """
    __tablename__ = "vehicle_history"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False, index=True)
    
    action_type = Column(Enum(VehicleHistoryAction), nullable=False)
    old_status = Column(Enum(VehicleStatus), nullable=True)
    new_status = Column(Enum(VehicleStatus), nullable=True)
    
    reference_type = Column(Enum(HistoryReferenceType), nullable=True)
    reference_id = Column(Integer, nullable=True)
    
    description = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False, index=True)
    
    __table_args__ = (
        CheckConstraint(
            "(reference_type IS NULL AND reference_id IS NULL) OR "
            "(reference_type IS NOT NULL AND reference_id IS NOT NULL)",
            name="reference_pair",
        ),
    )
    
    def __repr__(self):
        return f"<VehicleHistory(vehicle={self.vehicle_id}, action='{self.action_type.value}')>"
