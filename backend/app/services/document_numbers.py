"""
Document numbering service.

Generates RO/HD/PT numbers of the form {prefix}{yyyyMMdd}{seq:03}.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update

from backend.app.models.document_sequence import DocumentSequence


RENTAL_ORDER_PREFIX = "RO"
INVOICE_PREFIX = "HD"
PAYMENT_PREFIX = "PT"


async def next_document_number(
    db: AsyncSession,
    prefix: str,
    now: Optional[datetime] = None
) -> str:
    """
    Reserve the next number for today's prefix.
    
    Args:
        db: Database session (caller commits)
        prefix: Document prefix (RO, HD, PT)
        now: Clock override, defaults to utcnow
    
    Returns:
        Document number such as "RO20261018001"
    
    Raises:
        IntegrityError: If a concurrent request created today's counter first
    """
    day_prefix = f"{prefix}{(now or datetime.utcnow()):%Y%m%d}"
    
    result = await db.execute(
        update(DocumentSequence)
        .where(DocumentSequence.prefix == day_prefix)
        .values(last_value=DocumentSequence.last_value + 1)
        .returning(DocumentSequence.last_value)
        .execution_options(synchronize_session=False)
    )
    sequence = result.scalar_one_or_none()
    
    if sequence is None:
        # First document of the day
        sequence = 1
        db.add(DocumentSequence(prefix=day_prefix, last_value=sequence))
        await db.flush()
    
    return f"{day_prefix}{sequence:03d}"
