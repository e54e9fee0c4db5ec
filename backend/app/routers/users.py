from uuid import UUID

from fastapi import APIRouter, HTTPException, Request, status
from sqlalchemy import select

from app.dependencies import Context, CurrentUser
from app.limiter import actor_rate_limit, limiter
from app.models import User
from app.schemas.user import UserProfileResponse, UserResponse
from app.services.video_queries import subscriber_count, user_video_count, viewer_subscribed

router = APIRouter()


@router.get("/me", response_model=UserResponse)
@limiter.limit(actor_rate_limit)
async def get_me(request: Request, current_user: CurrentUser):
    return current_user


@router.get("/{user_id}", response_model=UserProfileResponse)
async def get_user(user_id: UUID, ctx: Context):
    """Public profile with video and subscriber counts."""
    viewer_id = ctx.user.id if ctx.user else None

    result = await ctx.db.execute(
        select(
            User,
            user_video_count().label("video_count"),
            subscriber_count().label("subscriber_count"),
            viewer_subscribed(viewer_id).label("viewer_subscribed"),
        ).where(User.id == user_id)
    )
    row = result.first()

    if not row:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    user = row.User
    return UserProfileResponse(
        id=user.id,
        name=user.name,
        image_url=user.image_url,
        banner_url=user.banner_url,
        created_at=user.created_at,
        video_count=row.video_count,
        subscriber_count=row.subscriber_count,
        viewer_subscribed=bool(row.viewer_subscribed),
    )
