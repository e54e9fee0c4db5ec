"""
Creator subscriptions. A user can't subscribe to themselves.
"""
import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request, status
from sqlalchemy import select

from app.dependencies import ProtectedContext
from app.limiter import actor_rate_limit, limiter
from app.models import Subscription, User
from app.schemas.engagement import SubscriptionStatus
from app.schemas.pagination import CursorPage
from app.schemas.user import SubscriptionResponse, VideoOwner
from app.services import engagement
from app.services.pagination import PageQuery, paginate
from app.services.video_queries import subscriber_count

logger = logging.getLogger(__name__)

router = APIRouter()


def _reject_self(ctx, user_id: UUID) -> None:
    if user_id == ctx.user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot subscribe to yourself"
        )


@router.get("/subscriptions", response_model=CursorPage[SubscriptionResponse])
@limiter.limit(actor_rate_limit)
async def list_subscriptions(
    request: Request,
    ctx: ProtectedContext,
    page_params: PageQuery,
):
    """Creators the caller follows, most recently subscribed first."""
    query = (
        select(Subscription, User, subscriber_count().label("subscriber_count"))
        .join(User, Subscription.creator_id == User.id)
        .where(Subscription.viewer_id == ctx.user.id)
    )
    page = await paginate(
        ctx.db,
        query,
        sort_column=Subscription.updated_at,
        id_column=Subscription.creator_id,
        params=page_params,
    )

    items = [
        SubscriptionResponse(
            creator_id=row.Subscription.creator_id,
            viewer_id=row.Subscription.viewer_id,
            updated_at=row.Subscription.updated_at,
            user=VideoOwner(
                id=row.User.id,
                name=row.User.name,
                image_url=row.User.image_url,
                subscriber_count=row.subscriber_count,
                viewer_subscribed=True,
            ),
        )
        for row in page.rows
    ]
    return CursorPage[SubscriptionResponse](items=items, next_cursor=page.next_cursor)


@router.post("/subscriptions/{user_id}", response_model=SubscriptionStatus, status_code=status.HTTP_201_CREATED)
@limiter.limit(actor_rate_limit)
async def subscribe(request: Request, user_id: UUID, ctx: ProtectedContext):
    _reject_self(ctx, user_id)

    if not await ctx.db.get(User, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    await engagement.subscribe(ctx.db, ctx.user.id, user_id)
    return SubscriptionStatus(creator_id=user_id, subscribed=True)


@router.delete("/subscriptions/{user_id}", response_model=SubscriptionStatus)
@limiter.limit(actor_rate_limit)
async def unsubscribe(request: Request, user_id: UUID, ctx: ProtectedContext):
    _reject_self(ctx, user_id)

    removed = await engagement.unsubscribe(ctx.db, ctx.user.id, user_id)
    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Subscription not found"
        )

    logger.info(f"User {ctx.user.id} unsubscribed from {user_id}")
    return SubscriptionStatus(creator_id=user_id, subscribed=False)
