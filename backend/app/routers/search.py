from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query

from app.dependencies import Context
from app.models import Video
from app.schemas.pagination import CursorPage
from app.schemas.video import VideoCardResponse
from app.services.pagination import PageQuery, paginate
from app.services.video_queries import card_fields, public_video_cards

router = APIRouter()


@router.get("/search", response_model=CursorPage[VideoCardResponse])
async def search_videos(
    ctx: Context,
    page_params: PageQuery,
    query: Optional[str] = Query(None, description="Case-insensitive title match"),
    category_id: Optional[UUID] = Query(None),
):
    """Search public videos by title, optionally within a category."""
    stmt = public_video_cards()

    if query:
        # Escape SQL wildcards so they match literally
        safe_query = query.replace("\\", "\\\\").replace("%", r"\%").replace("_", r"\_")
        stmt = stmt.where(Video.title.ilike(f"%{safe_query}%", escape="\\"))
    if category_id:
        stmt = stmt.where(Video.category_id == category_id)

    page = await paginate(ctx.db, stmt, sort_column=Video.updated_at, id_column=Video.id, params=page_params)
    return CursorPage[VideoCardResponse](
        items=[VideoCardResponse(**card_fields(row)) for row in page.rows],
        next_cursor=page.next_cursor,
    )
