"""
Engagement writes keyed by (actor, target).

Uniqueness is enforced by the composite primary keys; writes go through
INSERT ... ON CONFLICT so concurrent requests cannot produce duplicate rows.
"""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import dialect_insert
from app.models import CommentReaction, ReactionType, Subscription, VideoReaction, VideoView
from app.models.base import utcnow

logger = logging.getLogger(__name__)


async def _toggle_reaction(
    db: AsyncSession,
    model,
    target_column: str,
    user_id: UUID,
    target_id: UUID,
    reaction: ReactionType,
) -> Optional[str]:
    target = getattr(model, target_column)
    result = await db.execute(
        select(model.type).where(model.user_id == user_id, target == target_id)
    )
    existing = result.scalar_one_or_none()

    if existing == reaction.value:
        await db.execute(
            delete(model).where(
                model.user_id == user_id,
                target == target_id,
                model.type == reaction.value,
            )
        )
        await db.commit()
        return None

    now = utcnow()
    stmt = dialect_insert(db, model).values(
        user_id=user_id,
        type=reaction.value,
        created_at=now,
        updated_at=now,
        **{target_column: target_id},
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[model.user_id, target],
        set_={"type": reaction.value, "updated_at": now},
    )
    await db.execute(stmt)
    await db.commit()
    return reaction.value


async def toggle_video_reaction(
    db: AsyncSession, user_id: UUID, video_id: UUID, reaction: ReactionType
) -> Optional[str]:
    """
    Like/dislike a video.

    Repeating the current reaction removes it; otherwise the row is created
    or its type overwritten. Returns the caller's reaction afterwards.
    """
    return await _toggle_reaction(db, VideoReaction, "video_id", user_id, video_id, reaction)


async def toggle_comment_reaction(
    db: AsyncSession, user_id: UUID, comment_id: UUID, reaction: ReactionType
) -> Optional[str]:
    return await _toggle_reaction(db, CommentReaction, "comment_id", user_id, comment_id, reaction)


async def record_view(db: AsyncSession, user_id: UUID, video_id: UUID) -> bool:
    """Record a view once per (user, video). Returns True if a row was inserted."""
    now = utcnow()
    stmt = (
        dialect_insert(db, VideoView)
        .values(user_id=user_id, video_id=video_id, created_at=now, updated_at=now)
        .on_conflict_do_nothing(index_elements=[VideoView.user_id, VideoView.video_id])
    )
    result = await db.execute(stmt)
    await db.commit()
    return result.rowcount > 0


async def subscribe(db: AsyncSession, viewer_id: UUID, creator_id: UUID) -> bool:
    now = utcnow()
    stmt = (
        dialect_insert(db, Subscription)
        .values(viewer_id=viewer_id, creator_id=creator_id, created_at=now, updated_at=now)
        .on_conflict_do_nothing(index_elements=[Subscription.viewer_id, Subscription.creator_id])
    )
    result = await db.execute(stmt)
    await db.commit()
    if result.rowcount > 0:
        logger.info(f"User {viewer_id} subscribed to {creator_id}")
    return result.rowcount > 0


async def unsubscribe(db: AsyncSession, viewer_id: UUID, creator_id: UUID) -> bool:
    """Returns False when there was no subscription to remove."""
    result = await db.execute(
        delete(Subscription).where(
            Subscription.viewer_id == viewer_id,
            Subscription.creator_id == creator_id,
        )
    )
    await db.commit()
    return result.rowcount > 0
