"""
Employee database model.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from backend.app.db.session import Base


class Employee(Base):
    """Staff member handling a rental at the counter."""
    __tablename__ = "employees"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    full_name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)
    position = Column(String(100), nullable=True)
    
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    
    def __repr__(self):
        return f"<Employee(id={self.id}, name='{self.full_name}')>"
