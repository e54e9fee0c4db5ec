from app.models.user import User
from app.models.category import Category
from app.models.video import Video, VideoStatus, VideoVisibility
from app.models.comment import Comment
from app.models.engagement import ReactionType, VideoReaction, CommentReaction, VideoView, Subscription
from app.models.playlist import Playlist, PlaylistVideo

__all__ = [
    "User",
    "Category",
    "Video",
    "VideoStatus",
    "VideoVisibility",
    "Comment",
    "ReactionType",
    "VideoReaction",
    "CommentReaction",
    "VideoView",
    "Subscription",
    "Playlist",
    "PlaylistVideo",
]
