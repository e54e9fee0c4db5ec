"""
Video comments with one level of replies, plus comment reactions.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request, status
from sqlalchemy import delete, func, select

from app.dependencies import Context, ProtectedContext
from app.limiter import actor_rate_limit, limiter
from app.models import Comment, ReactionType, User, Video
from app.schemas.comment import CommentCreate, CommentItemResponse, CommentPage, CommentResponse
from app.schemas.engagement import ReactionResponse
from app.schemas.user import UserSummary
from app.services import engagement
from app.services.pagination import PageQuery, paginate
from app.services.video_queries import comment_reaction_count, reply_count, viewer_comment_reaction

router = APIRouter()


@router.get("/comments", response_model=CommentPage)
async def list_comments(
    ctx: Context,
    page_params: PageQuery,
    video_id: UUID = Query(...),
    parent_id: Optional[UUID] = Query(None, description="List replies to this comment"),
):
    """Top-level comments of a video (or replies to ``parent_id``), newest first."""
    viewer_id = ctx.user.id if ctx.user else None

    total = await ctx.db.execute(
        select(func.count()).select_from(Comment).where(Comment.video_id == video_id)
    )

    query = (
        select(
            Comment,
            User,
            comment_reaction_count(ReactionType.LIKE).label("like_count"),
            comment_reaction_count(ReactionType.DISLIKE).label("dislike_count"),
            reply_count().label("reply_count"),
            viewer_comment_reaction(viewer_id).label("viewer_reaction"),
        )
        .join(User, Comment.user_id == User.id)
        .where(Comment.video_id == video_id)
    )
    if parent_id:
        query = query.where(Comment.parent_id == parent_id)
    else:
        query = query.where(Comment.parent_id.is_(None))

    page = await paginate(ctx.db, query, sort_column=Comment.updated_at, id_column=Comment.id, params=page_params)

    items = []
    for row in page.rows:
        comment = CommentResponse.model_validate(row.Comment)
        items.append(CommentItemResponse(
            **comment.model_dump(),
            user=UserSummary.model_validate(row.User),
            like_count=row.like_count,
            dislike_count=row.dislike_count,
            reply_count=row.reply_count,
            viewer_reaction=row.viewer_reaction,
        ))

    return CommentPage(items=items, next_cursor=page.next_cursor, total_count=total.scalar_one())


@router.post("/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(actor_rate_limit)
async def create_comment(request: Request, data: CommentCreate, ctx: ProtectedContext):
    """Comment on a video, or reply to a top-level comment."""
    if not await ctx.db.get(Video, data.video_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Video not found"
        )

    if data.parent_id:
        parent = await ctx.db.get(Comment, data.parent_id)
        if not parent:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Parent comment not found"
            )
        # Replies to replies are not allowed
        if parent.parent_id is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot reply to a reply"
            )
        if parent.video_id != data.video_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Parent comment belongs to another video"
            )

    comment = Comment(
        user_id=ctx.user.id,
        video_id=data.video_id,
        parent_id=data.parent_id,
        value=data.value,
    )
    ctx.db.add(comment)
    await ctx.db.commit()
    await ctx.db.refresh(comment)
    return comment


@router.delete("/comments/{comment_id}", response_model=CommentResponse)
@limiter.limit(actor_rate_limit)
async def delete_comment(request: Request, comment_id: UUID, ctx: ProtectedContext):
    result = await ctx.db.execute(
        select(Comment).where(Comment.id == comment_id, Comment.user_id == ctx.user.id)
    )
    comment = result.scalar_one_or_none()
    if not comment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Comment not found"
        )

    deleted = CommentResponse.model_validate(comment)
    # Replies go with it (ON DELETE CASCADE)
    await ctx.db.execute(delete(Comment).where(Comment.id == comment_id))
    await ctx.db.commit()
    return deleted


async def _react(ctx, comment_id: UUID, reaction: ReactionType) -> ReactionResponse:
    if not await ctx.db.get(Comment, comment_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Comment not found"
        )
    current = await engagement.toggle_comment_reaction(ctx.db, ctx.user.id, comment_id, reaction)
    return ReactionResponse(target_id=comment_id, reaction=current)


@router.post("/comments/{comment_id}/like", response_model=ReactionResponse)
@limiter.limit(actor_rate_limit)
async def like_comment(request: Request, comment_id: UUID, ctx: ProtectedContext):
    return await _react(ctx, comment_id, ReactionType.LIKE)


@router.post("/comments/{comment_id}/dislike", response_model=ReactionResponse)
@limiter.limit(actor_rate_limit)
async def dislike_comment(request: Request, comment_id: UUID, ctx: ProtectedContext):
    return await _react(ctx, comment_id, ReactionType.DISLIKE)
