"""
Keyset (cursor) pagination shared by every list endpoint.

Rows are ordered by ``(sort_value DESC, id DESC)``. A page asks for one row
more than ``limit``; when that extra row comes back it is dropped and the
last kept row becomes the next cursor.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Annotated, Any, Optional, Type, Union
from uuid import UUID

from fastapi import Depends, HTTPException, Query, status
from pydantic import TypeAdapter, ValidationError
from sqlalchemy import Select, and_, or_
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.pagination import DEFAULT_LIMIT, MAX_LIMIT, Cursor

SORT_VALUE_LABEL = "cursor_sort_value"
ID_LABEL = "cursor_id"


@dataclass
class PageParams:
    cursor: Optional[Cursor]
    limit: int


@dataclass
class Page:
    rows: list[Row]
    next_cursor: Optional[Cursor]


def _normalize_sort_value(value: Any) -> Union[int, datetime]:
    # Timestamps are stored as UTC; SQLite keeps only the wall-clock part
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return value


def page_params(sort_type: Type = datetime):
    """Build a dependency parsing ``cursor_id``, ``cursor_sort_value`` and ``limit``."""
    adapter = TypeAdapter(sort_type)

    def dependency(
        cursor_id: Annotated[Optional[UUID], Query()] = None,
        cursor_sort_value: Annotated[Optional[str], Query()] = None,
        limit: Annotated[int, Query(ge=1, le=MAX_LIMIT)] = DEFAULT_LIMIT,
    ) -> PageParams:
        if (cursor_id is None) != (cursor_sort_value is None):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="cursor_id and cursor_sort_value must be given together",
            )
        if cursor_id is None:
            return PageParams(cursor=None, limit=limit)

        try:
            sort_value = adapter.validate_python(cursor_sort_value)
        except ValidationError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid cursor_sort_value",
            )
        return PageParams(
            cursor=Cursor(id=cursor_id, sort_value=_normalize_sort_value(sort_value)),
            limit=limit,
        )

    return dependency


PageQuery = Annotated[PageParams, Depends(page_params(datetime))]
CountPageQuery = Annotated[PageParams, Depends(page_params(int))]


async def paginate(
    db: AsyncSession,
    query: Select,
    *,
    sort_column,
    id_column,
    params: PageParams,
) -> Page:
    """
    Run ``query`` as one keyset page.

    Args:
        db: Session to execute on
        query: Select carrying the entities/columns and filter predicate
        sort_column: Expression the page is ordered by (timestamp or count)
        id_column: Unique tiebreaker expression
        params: Cursor and limit from the request

    Returns:
        Page whose rows keep the caller's columns, plus ``cursor_sort_value``
        and ``cursor_id``
    """
    query = query.add_columns(
        sort_column.label(SORT_VALUE_LABEL),
        id_column.label(ID_LABEL),
    )

    cursor = params.cursor
    if cursor is not None:
        query = query.where(
            or_(
                sort_column < cursor.sort_value,
                and_(sort_column == cursor.sort_value, id_column < cursor.id),
            )
        )

    query = query.order_by(sort_column.desc(), id_column.desc()).limit(params.limit + 1)

    result = await db.execute(query)
    rows = list(result.all())

    has_more = len(rows) > params.limit
    if has_more:
        rows = rows[:params.limit]

    next_cursor = None
    if has_more:
        last = rows[-1]._mapping
        next_cursor = Cursor(
            id=last[ID_LABEL],
            sort_value=_normalize_sort_value(last[SORT_VALUE_LABEL]),
        )

    return Page(rows=rows, next_cursor=next_cursor)
