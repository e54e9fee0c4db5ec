import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings
from app.database import engine, Base
from app.limiter import limiter
from app.services import workflow
from app.routers import (
    categories,
    comments,
    playlists,
    search,
    studio,
    subscriptions,
    users,
    videos,
    webhooks,
    workflows,
)
# Import models to register them with Base
from app import models  # noqa: F401

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.environment == "development" else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: "BAD_REQUEST",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_SUPPORTED",
    status.HTTP_409_CONFLICT: "CONFLICT",
    status.HTTP_429_TOO_MANY_REQUESTS: "TOO_MANY_REQUESTS",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "INTERNAL_SERVER_ERROR",
}


def error_code(status_code: int) -> str:
    if status_code >= 500:
        return ERROR_CODES[status.HTTP_500_INTERNAL_SERVER_ERROR]
    return ERROR_CODES.get(status_code, ERROR_CODES[status.HTTP_400_BAD_REQUEST])


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create database tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    # Pick up workflow runs orphaned by a previous process
    resume_task = asyncio.create_task(workflow.resume_loop(settings.workflow_resume_interval_seconds))
    yield
    resume_task.cancel()
    await engine.dispose()


app = FastAPI(title="Tubekit API", version="1.0.0", lifespan=lifespan)

# Rate limiter state
app.state.limiter = limiter


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": error_code(exc.status_code)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Invalid input is a BAD_REQUEST like any other client error
    messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "; ".join(messages), "code": "BAD_REQUEST"},
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"detail": f"Rate limit exceeded: {exc.detail}", "code": "TOO_MANY_REQUESTS"},
    )


# CORS - explicitly list allowed methods and headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
)


# Security headers middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if settings.environment == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


# Routers
app.include_router(categories.router, tags=["categories"])
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(videos.router, tags=["videos"])
app.include_router(search.router, tags=["search"])
app.include_router(studio.router, tags=["studio"])
app.include_router(comments.router, tags=["comments"])
app.include_router(subscriptions.router, tags=["subscriptions"])
app.include_router(playlists.router, tags=["playlists"])
app.include_router(workflows.router, tags=["workflows"])
app.include_router(webhooks.router, tags=["webhooks"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
