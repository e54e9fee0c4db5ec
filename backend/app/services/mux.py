"""
Mux Video API client and webhook verification.
Videos are uploaded directly to Mux; Mux reports transcoding progress back
through signed webhooks.
"""
import hashlib
import hmac
import logging
import time
from typing import Optional

import httpx

from app.config import get_settings
from app.models.video import VideoStatus
from app.services.errors import ProviderError, WebhookVerificationError

logger = logging.getLogger(__name__)

MUX_IMAGE_BASE = "https://image.mux.com"
MUX_STREAM_BASE = "https://stream.mux.com"

# Mux asset status -> local video status
ASSET_STATUS_MAP = {
    "waiting": VideoStatus.WAITING,
    "preparing": VideoStatus.PROCESSING,
    "ready": VideoStatus.READY,
    "errored": VideoStatus.ERRORED,
}


class UploadSession:
    def __init__(self, upload_id: str, url: str, status: str, asset_id: Optional[str] = None):
        self.upload_id = upload_id
        self.url = url
        self.status = status
        self.asset_id = asset_id


class AssetInfo:
    def __init__(
        self,
        asset_id: str,
        status: str,
        playback_id: Optional[str] = None,
        duration_seconds: Optional[float] = None,
    ):
        self.asset_id = asset_id
        self.status = status
        self.playback_id = playback_id
        self.duration_seconds = duration_seconds


def map_asset_status(mux_status: Optional[str]) -> Optional[VideoStatus]:
    return ASSET_STATUS_MAP.get(mux_status or "")


def thumbnail_url(playback_id: str) -> str:
    return f"{MUX_IMAGE_BASE}/{playback_id}/thumbnail.jpg"


def preview_url(playback_id: str) -> str:
    return f"{MUX_IMAGE_BASE}/{playback_id}/animated.gif"


def transcript_url(playback_id: str, track_id: str) -> str:
    return f"{MUX_STREAM_BASE}/{playback_id}/text/{track_id}.txt"


def _auth() -> tuple[str, str]:
    settings = get_settings()
    return (settings.mux_token_id, settings.mux_token_secret)


async def _request(method: str, path: str, json: Optional[dict] = None) -> Optional[dict]:
    settings = get_settings()
    url = f"{settings.mux_api_base}{path}"
    try:
        async with httpx.AsyncClient(timeout=30.0, auth=_auth()) as client:
            response = await client.request(method, url, json=json)
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"Mux API {method} {path} failed: {e}")
        raise ProviderError(f"Mux request failed: {e}") from e

    if response.status_code == 204 or not response.content:
        return None
    return response.json().get("data")


async def create_upload(user_id: str, cors_origin: str = "*") -> UploadSession:
    """
    Create a direct upload URL.

    The asset is public, tagged with the owner via passthrough and gets
    auto-generated English subtitles (used for transcripts).
    """
    body = {
        "cors_origin": cors_origin,
        "new_asset_settings": {
            "passthrough": user_id,
            "playback_policy": ["public"],
            "input": [
                {
                    "generated_subtitles": [
                        {"language_code": "en", "name": "English"},
                    ],
                },
            ],
        },
    }
    data = await _request("POST", "/video/v1/uploads", json=body)
    return UploadSession(
        upload_id=data["id"],
        url=data["url"],
        status=data.get("status", "waiting"),
        asset_id=data.get("asset_id"),
    )


async def retrieve_upload(upload_id: str) -> UploadSession:
    data = await _request("GET", f"/video/v1/uploads/{upload_id}")
    return UploadSession(
        upload_id=data["id"],
        url=data.get("url", ""),
        status=data.get("status", "waiting"),
        asset_id=data.get("asset_id"),
    )


async def retrieve_asset(asset_id: str) -> AssetInfo:
    data = await _request("GET", f"/video/v1/assets/{asset_id}")
    playback_ids = data.get("playback_ids") or []
    return AssetInfo(
        asset_id=data["id"],
        status=data.get("status", "preparing"),
        playback_id=playback_ids[0]["id"] if playback_ids else None,
        duration_seconds=data.get("duration"),
    )


async def delete_asset(asset_id: str) -> None:
    await _request("DELETE", f"/video/v1/assets/{asset_id}")


def verify_webhook_signature(
    raw_body: bytes,
    signature_header: str,
    secret: Optional[str] = None,
    tolerance_seconds: Optional[int] = None,
    now: Optional[float] = None,
) -> None:
    """
    Verify a ``mux-signature: t=<unix>,v1=<hex>`` header.

    The signed payload is ``"<t>.<raw body>"`` (HMAC-SHA256). Raises
    WebhookVerificationError on a malformed header, stale timestamp or
    signature mismatch.
    """
    settings = get_settings()
    secret = secret if secret is not None else settings.mux_webhook_secret
    if not secret:
        raise WebhookVerificationError("MUX_WEBHOOK_SECRET is not set")
    if tolerance_seconds is None:
        tolerance_seconds = settings.mux_webhook_tolerance_seconds

    timestamp = None
    signatures = []
    for part in signature_header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)

    if not timestamp or not signatures:
        raise WebhookVerificationError("Malformed mux-signature header")

    try:
        ts = int(timestamp)
    except ValueError:
        raise WebhookVerificationError("Invalid signature timestamp")

    current = now if now is not None else time.time()
    if abs(current - ts) > tolerance_seconds:
        raise WebhookVerificationError("Signature timestamp outside tolerance")

    payload = f"{timestamp}.".encode() + raw_body
    expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise WebhookVerificationError("Signature mismatch")


def sign_webhook(raw_body: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """Build a ``mux-signature`` header value (used by tests and local tooling)."""
    ts = timestamp if timestamp is not None else int(time.time())
    payload = f"{ts}.".encode() + raw_body
    digest = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"
