from datetime import datetime
from typing import Generic, Optional, TypeVar, Union
from uuid import UUID

from pydantic import BaseModel

T = TypeVar("T")

DEFAULT_LIMIT = 5
MAX_LIMIT = 100


class Cursor(BaseModel):
    """Position of the last row of a page: (sort value, id)."""
    id: UUID
    sort_value: Union[int, datetime]


class CursorPage(BaseModel, Generic[T]):
    items: list[T]
    next_cursor: Optional[Cursor] = None
