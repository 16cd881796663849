"""
Promotion database model.

Discount codes applied to rental orders at pricing time.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, Enum
from backend.app.db.session import Base
from backend.app.models.billing_enums import PromotionType, PromotionStatus


class Promotion(Base):
    """
    Promotion model.
    
    PERCENTAGE promotions take `value` percent of the subtotal, capped at
    `max_discount`; FIXED_AMOUNT promotions take `value`, capped at the
    subtotal. `used_count` counts orders that reserved the code.
    """
    __tablename__ = "promotions"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code = Column(String(50), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    
    type = Column(Enum(PromotionType), nullable=False)
    value = Column(Numeric(18, 2), nullable=False)
    min_amount = Column(Numeric(18, 2), nullable=True)
    max_discount = Column(Numeric(18, 2), nullable=True)
    
    # Validity window
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    
    # Usage
    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)
    
    status = Column(Enum(PromotionStatus), default=PromotionStatus.ACTIVE, nullable=False)
    
    # Audit
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    def __repr__(self):
        return f"<Promotion(id={self.id}, code='{self.code}', type='{self.type.value}')>"
