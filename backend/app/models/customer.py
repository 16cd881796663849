"""
Customer database model.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from backend.app.db.session import Base


class Customer(Base):
    """Renting customer. Managed by the master-data screens."""
    __tablename__ = "customers"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    full_name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=False)
    address = Column(String(500), nullable=True)
    identity_card = Column(String(50), nullable=True)
    
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    
    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.full_name}')>"
