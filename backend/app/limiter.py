"""
Per-actor rate limiting.

Authenticated requests are keyed by user id (set on ``request.state`` while
resolving the current user); anything else falls back to the client address.
"""
from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_settings

settings = get_settings()


def get_actor_key(request: Request) -> str:
    user_id = getattr(request.state, "user_id", None)
    if user_id is not None:
        return f"user:{user_id}"
    return get_remote_address(request)


def actor_rate_limit() -> str:
    return get_settings().rate_limit


limiter = Limiter(
    key_func=get_actor_key,
    strategy="moving-window",
    storage_uri=settings.redis_url or "memory://",
)
