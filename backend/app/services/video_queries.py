"""
Query-time aggregates.

Counts are correlated scalar subqueries so they can be selected alongside an
entity, filtered on and used as a pagination sort key. Nothing is stored.
"""
from typing import Optional
from uuid import UUID

from sqlalchemy import Select, exists, func, literal, select
from sqlalchemy.orm import aliased

from app.models import (
    Comment,
    CommentReaction,
    Playlist,
    PlaylistVideo,
    ReactionType,
    Subscription,
    User,
    Video,
    VideoReaction,
    VideoView,
    VideoVisibility,
)
from app.schemas.user import UserSummary


def view_count():
    return (
        select(func.count())
        .select_from(VideoView)
        .where(VideoView.video_id == Video.id)
        .correlate(Video)
        .scalar_subquery()
    )


def video_reaction_count(reaction: ReactionType):
    return (
        select(func.count())
        .select_from(VideoReaction)
        .where(VideoReaction.video_id == Video.id, VideoReaction.type == reaction.value)
        .correlate(Video)
        .scalar_subquery()
    )


def video_comment_count():
    return (
        select(func.count())
        .select_from(Comment)
        .where(Comment.video_id == Video.id)
        .correlate(Video)
        .scalar_subquery()
    )


def subscriber_count():
    return (
        select(func.count())
        .select_from(Subscription)
        .where(Subscription.creator_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )


def user_video_count():
    return (
        select(func.count())
        .select_from(Video)
        .where(Video.user_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )


def viewer_subscribed(viewer_id: Optional[UUID]):
    if viewer_id is None:
        return literal(False)
    return exists().where(
        Subscription.viewer_id == viewer_id,
        Subscription.creator_id == User.id,
    ).correlate(User)


def viewer_video_reaction(viewer_id: Optional[UUID]):
    if viewer_id is None:
        return literal(None)
    return (
        select(VideoReaction.type)
        .where(VideoReaction.video_id == Video.id, VideoReaction.user_id == viewer_id)
        .correlate(Video)
        .scalar_subquery()
    )


def comment_reaction_count(reaction: ReactionType):
    return (
        select(func.count())
        .select_from(CommentReaction)
        .where(CommentReaction.comment_id == Comment.id, CommentReaction.type == reaction.value)
        .correlate(Comment)
        .scalar_subquery()
    )


def reply_count():
    replies = aliased(Comment)
    return (
        select(func.count())
        .select_from(replies)
        .where(replies.parent_id == Comment.id)
        .correlate(Comment)
        .scalar_subquery()
    )


def viewer_comment_reaction(viewer_id: Optional[UUID]):
    if viewer_id is None:
        return literal(None)
    return (
        select(CommentReaction.type)
        .where(CommentReaction.comment_id == Comment.id, CommentReaction.user_id == viewer_id)
        .correlate(Comment)
        .scalar_subquery()
    )


def playlist_video_count():
    return (
        select(func.count())
        .select_from(PlaylistVideo)
        .where(PlaylistVideo.playlist_id == Playlist.id)
        .correlate(Playlist)
        .scalar_subquery()
    )


def playlist_thumbnail():
    return (
        select(Video.thumbnail_url)
        .join(PlaylistVideo, PlaylistVideo.video_id == Video.id)
        .where(PlaylistVideo.playlist_id == Playlist.id)
        .order_by(PlaylistVideo.updated_at.desc())
        .limit(1)
        .correlate(Playlist)
        .scalar_subquery()
    )


def video_cards() -> Select:
    """Videos joined with their owner plus view/like/dislike counts."""
    return (
        select(
            Video,
            User,
            view_count().label("view_count"),
            video_reaction_count(ReactionType.LIKE).label("like_count"),
            video_reaction_count(ReactionType.DISLIKE).label("dislike_count"),
        )
        .join(User, Video.user_id == User.id)
    )


def public_video_cards() -> Select:
    return video_cards().where(Video.visibility == VideoVisibility.PUBLIC.value)


def card_fields(row) -> dict:
    """Flatten a ``video_cards`` row into response fields."""
    video = row.Video
    return {
        **{column.key: getattr(video, column.key) for column in Video.__table__.columns},
        "user": UserSummary.model_validate(row.User),
        "view_count": row.view_count,
        "like_count": row.like_count,
        "dislike_count": row.dislike_count,
    }
