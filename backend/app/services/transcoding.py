"""
Video transcoding status reconciliation.

Mux reports progress through webhooks that may arrive late, twice or out of
order. Status only moves forward:

    waiting -> processing -> ready
    waiting/processing -> errored

Provider identifiers are always overwritten with the event's values; only
the status change is guarded.
"""
import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.video import Video, VideoStatus
from app.schemas.webhook import MuxEvent
from app.services import mux

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    VideoStatus.WAITING: {VideoStatus.PROCESSING, VideoStatus.READY, VideoStatus.ERRORED},
    VideoStatus.PROCESSING: {VideoStatus.READY, VideoStatus.ERRORED},
    VideoStatus.READY: set(),
    VideoStatus.ERRORED: set(),
}


def can_transition(current: VideoStatus, target: VideoStatus) -> bool:
    return target == current or target in ALLOWED_TRANSITIONS[current]


def apply_status(video: Video, target: Optional[VideoStatus]) -> None:
    """Set ``video.mux_status`` if the move is allowed; otherwise leave it."""
    if target is None:
        return
    current = VideoStatus(video.mux_status)
    if can_transition(current, target):
        video.mux_status = target.value
    else:
        logger.info(f"Ignoring status change {current.value} -> {target.value} for video {video.id}")


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


async def _video_by_upload(db: AsyncSession, upload_id: str) -> Optional[Video]:
    result = await db.execute(select(Video).where(Video.mux_upload_id == upload_id))
    return result.scalar_one_or_none()


async def handle_mux_event(db: AsyncSession, event: MuxEvent) -> None:
    """Apply a verified Mux webhook event. Unknown videos and event types are no-ops."""
    data = event.data

    if event.type == "video.asset.created":
        upload_id = data.get("upload_id")
        if not upload_id:
            raise _bad_request("Missing upload ID")
        video = await _video_by_upload(db, upload_id)
        if video is None:
            logger.info(f"asset.created for unknown upload {upload_id}")
            return
        video.mux_asset_id = data.get("id")
        apply_status(video, mux.map_asset_status(data.get("status")))
        await db.commit()

    elif event.type == "video.asset.ready":
        upload_id = data.get("upload_id")
        if not upload_id:
            raise _bad_request("Missing upload ID")
        playback_ids = data.get("playback_ids") or []
        first = playback_ids[0] if isinstance(playback_ids, list) and playback_ids else None
        playback_id = first.get("id") if isinstance(first, dict) else None
        if not playback_id:
            raise _bad_request("Missing playback ID")
        video = await _video_by_upload(db, upload_id)
        if video is None:
            logger.info(f"asset.ready for unknown upload {upload_id}")
            return
        video.mux_asset_id = data.get("id")
        video.mux_playback_id = playback_id
        video.duration = round((data.get("duration") or 0) * 1000)
        # Custom thumbnails uploaded by the owner win over Mux's
        if not video.thumbnail_key:
            video.thumbnail_url = mux.thumbnail_url(playback_id)
        video.preview_url = mux.preview_url(playback_id)
        apply_status(video, mux.map_asset_status(data.get("status")))
        await db.commit()

    elif event.type == "video.asset.errored":
        upload_id = data.get("upload_id")
        if not upload_id:
            raise _bad_request("Missing upload ID")
        video = await _video_by_upload(db, upload_id)
        if video is None:
            return
        apply_status(video, mux.map_asset_status(data.get("status")) or VideoStatus.ERRORED)
        await db.commit()

    elif event.type == "video.asset.deleted":
        upload_id = data.get("upload_id")
        if not upload_id:
            raise _bad_request("Missing upload ID")
        result = await db.execute(delete(Video).where(Video.mux_upload_id == upload_id))
        await db.commit()
        logger.info(f"asset.deleted removed {result.rowcount} video(s) for upload {upload_id}")

    elif event.type == "video.asset.track.ready":
        asset_id = data.get("asset_id")
        if not asset_id:
            raise _bad_request("Missing asset ID")
        result = await db.execute(select(Video).where(Video.mux_asset_id == asset_id))
        video = result.scalar_one_or_none()
        if video is None:
            return
        video.mux_track_id = data.get("id")
        video.mux_track_status = data.get("status")
        await db.commit()

    else:
        logger.debug(f"Ignoring Mux event {event.type}")


async def revalidate(db: AsyncSession, video: Video) -> Video:
    """Pull the current upload/asset state from Mux for an owner's video."""
    if not video.mux_upload_id:
        raise _bad_request("Video has no upload")

    upload = await mux.retrieve_upload(video.mux_upload_id)
    if not upload.asset_id:
        raise _bad_request("Upload has no asset yet")

    asset = await mux.retrieve_asset(upload.asset_id)
    video.mux_asset_id = asset.asset_id
    if asset.playback_id:
        video.mux_playback_id = asset.playback_id
    if asset.duration_seconds:
        video.duration = round(asset.duration_seconds * 1000)
    apply_status(video, mux.map_asset_status(asset.status))
    await db.commit()
    await db.refresh(video)
    return video
