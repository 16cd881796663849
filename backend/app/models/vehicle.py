"""
Vehicle database model.

Only the fields the rental workflow reads or writes are modelled here;
brand/type/colour catalogues belong to the master-data screens.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, Enum
from backend.app.db.session import Base
from backend.app.models.rental_enums import VehicleStatus


class Vehicle(Base):
    """
    Vehicle model.
    
    Status and current location change as side effects of rental order
    transitions. `version` is an optimistic-lock counter: two requests that
    read the same vehicle and both write it cannot both succeed.
    """
    __tablename__ = "vehicles"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Identification
    code = Column(String(50), unique=True, nullable=False, index=True)  # plate, e.g. 30A-12345
    model = Column(String(100), nullable=False)
    
    # Pricing
    daily_rental_price = Column(Numeric(18, 2), nullable=False)
    
    # Availability
    status = Column(Enum(VehicleStatus), default=VehicleStatus.AVAILABLE, nullable=False, index=True)
    current_location = Column(String(255), nullable=True)
    
    version = Column(Integer, nullable=False, default=1)
    
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    __mapper_args__ = {"version_id_col": version}
    
    def __repr__(self):
        return f"<Vehicle(id={self.id}, code='{self.code}', status='{self.status.value}')>"
