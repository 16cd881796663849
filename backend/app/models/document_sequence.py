"""
Document Sequence database model.

Per-day counters behind order, invoice and payment numbers.
"""

from sqlalchemy import Column, Integer, String
from backend.app.db.session import Base


class DocumentSequence(Base):
    """
    One row per day prefix, e.g. "RO20261018".
    
    last_value is bumped with a single UPDATE ... RETURNING so two writers
    never receive the same number; the primary key rejects a second
    insert of the same prefix.
    """
    __tablename__ = "document_sequences"
    
    prefix = Column(String(20), primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)
    
    def __repr__(self):
        return f"<DocumentSequence(prefix='{self.prefix}', last_value={self.last_value})>"
