"""
Shared response envelopes.
"""

from decimal import Decimal
from pydantic import BaseModel, PlainSerializer
from typing import Annotated, Generic, List, Optional, TypeVar

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard `{success, data, message}` envelope."""
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None


class PageResponse(BaseModel, Generic[T]):
    """Paginated list payload."""
    items: List[T]
    total: int
    page: int
    page_size: int


# Decimal internally, plain JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
