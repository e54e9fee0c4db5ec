"""
Inbound provider webhooks: Mux transcoding events, identity provider user
sync and UploadThing upload completion callbacks.

Every handler verifies the signature over the raw body before touching the
database, and acknowledges with a plain-text 200.
"""
import logging
from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import dialect_insert, get_db
from app.models import User, Video
from app.schemas.webhook import IdentityEvent, MuxEvent, UploadCallback
from app.services import identity, mux, storage, transcoding
from app.services.errors import ProviderError, WebhookVerificationError

logger = logging.getLogger(__name__)

router = APIRouter()

ACK = "Webhook received"


def _parse(model: type[BaseModel], raw_body: bytes):
    try:
        return model.model_validate_json(raw_body)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid webhook payload"
        )


@router.post("/webhooks/mux", response_class=PlainTextResponse)
async def mux_webhook(request: Request, db: Annotated[AsyncSession, Depends(get_db)]):
    signature = request.headers.get("mux-signature")
    if not signature:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No signature found"
        )

    raw_body = await request.body()
    try:
        mux.verify_webhook_signature(raw_body, signature)
    except WebhookVerificationError as e:
        logger.warning(f"Rejected Mux webhook: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature"
        )

    event = _parse(MuxEvent, raw_body)
    logger.info(f"Mux webhook {event.type}")
    await transcoding.handle_mux_event(db, event)
    return PlainTextResponse(ACK)


def _full_name(data: dict) -> str:
    return " ".join(part for part in (data.get("first_name"), data.get("last_name")) if part)


@router.post("/webhooks/identity", response_class=PlainTextResponse)
async def identity_webhook(request: Request, db: Annotated[AsyncSession, Depends(get_db)]):
    """Create, update and delete users from identity provider events."""
    svix_id = request.headers.get("svix-id")
    svix_timestamp = request.headers.get("svix-timestamp")
    svix_signature = request.headers.get("svix-signature")
    if not svix_id or not svix_timestamp or not svix_signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing svix headers"
        )

    raw_body = await request.body()
    try:
        identity.verify_webhook(raw_body, svix_id, svix_timestamp, svix_signature)
    except WebhookVerificationError as e:
        logger.warning(f"Rejected identity webhook: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Error verifying webhook"
        )

    event = _parse(IdentityEvent, raw_body)
    data = event.data
    external_id = data.get("id")

    if event.type in ("user.created", "user.updated", "user.deleted") and not external_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing user id"
        )

    if event.type == "user.created":
        values = {
            "external_id": external_id,
            "name": _full_name(data),
            "image_url": data.get("image_url"),
        }
        stmt = dialect_insert(db, User).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[User.external_id],
            set_={"name": values["name"], "image_url": values["image_url"]},
        )
        await db.execute(stmt)
        await db.commit()
        logger.info(f"Created user {external_id}")

    elif event.type == "user.updated":
        result = await db.execute(select(User).where(User.external_id == external_id))
        user = result.scalar_one_or_none()
        if user:
            user.name = _full_name(data)
            user.image_url = data.get("image_url")
            await db.commit()

    elif event.type == "user.deleted":
        await db.execute(delete(User).where(User.external_id == external_id))
        await db.commit()
        logger.info(f"Deleted user {external_id}")

    return PlainTextResponse(ACK)


@router.post("/webhooks/uploads", response_class=PlainTextResponse)
async def upload_callback(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    slug: Literal["thumbnail", "banner"] = Query(...),
):
    """
    Attach an uploaded thumbnail (to the owner's video) or banner (to the
    user). A previously stored file with a different key is deleted first.
    No matching record is acknowledged without changes.
    """
    raw_body = await request.body()
    try:
        storage.verify_callback_signature(raw_body, request.headers.get("x-uploadthing-signature"))
    except WebhookVerificationError as e:
        logger.warning(f"Rejected upload callback: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature"
        )

    callback = _parse(UploadCallback, raw_body)
    meta, file = callback.metadata, callback.file

    if slug == "thumbnail":
        if not meta.video_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing video id"
            )
        result = await db.execute(
            select(Video).where(Video.id == meta.video_id, Video.user_id == meta.user_id)
        )
        record = result.scalar_one_or_none()
        key_field, url_field = "thumbnail_key", "thumbnail_url"
    else:
        record = await db.get(User, meta.user_id)
        key_field, url_field = "banner_key", "banner_url"

    if record is None:
        logger.info(f"Upload callback ({slug}) matched no record")
        return PlainTextResponse(ACK)

    old_key: Optional[str] = getattr(record, key_field)
    if old_key and old_key != file.key:
        try:
            await storage.delete_files([old_key])
        except ProviderError as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to delete previous file: {e}"
            )

    setattr(record, key_field, file.key)
    setattr(record, url_field, file.url)
    await db.commit()
    return PlainTextResponse(ACK)
