"""
UploadThing file storage client.
Thumbnails and banners are uploaded by the browser; the server only deletes
replaced files, re-ingests provider thumbnails and verifies upload callbacks.
"""
import hashlib
import hmac
import logging
from typing import Optional

import httpx

from app.config import get_settings
from app.services.errors import ProviderError, WebhookVerificationError

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "hmac-sha256="


class StoredFile:
    def __init__(self, key: str, url: str):
        self.key = key
        self.url = url


def _headers() -> dict:
    return {
        "x-uploadthing-api-key": get_settings().uploadthing_api_key,
        "Content-Type": "application/json",
    }


async def _post(path: str, body: dict) -> dict:
    settings = get_settings()
    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(
                f"{settings.uploadthing_api_base}{path}",
                json=body,
                headers=_headers(),
            )
            response.raise_for_status()
            return response.json()
    except httpx.HTTPError as e:
        logger.error(f"UploadThing {path} failed: {e}")
        raise ProviderError(f"Storage request failed: {e}") from e


async def delete_files(keys: list[str]) -> None:
    if not keys:
        return
    await _post("/v6/deleteFiles", {"fileKeys": keys})


async def upload_from_url(url: str) -> StoredFile:
    """Copy a remote file into storage."""
    data = await _post("/v6/uploadFilesFromUrl", {"urls": [url]})
    entries = data.get("data") or []
    if not entries or entries[0].get("error") or not entries[0].get("data"):
        raise ProviderError("Storage did not return an uploaded file")
    uploaded = entries[0]["data"]
    return StoredFile(key=uploaded["key"], url=uploaded["url"])


def sign_callback(raw_body: bytes, api_key: str) -> str:
    digest = hmac.new(api_key.encode(), raw_body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_callback_signature(raw_body: bytes, signature_header: Optional[str], api_key: Optional[str] = None) -> None:
    """Verify ``x-uploadthing-signature: hmac-sha256=<hex>`` over the raw body."""
    if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
        raise WebhookVerificationError("Missing or malformed upload signature")
    key = api_key if api_key is not None else get_settings().uploadthing_api_key
    if not key:
        raise WebhookVerificationError("UPLOADTHING_API_KEY is not set")
    if not hmac.compare_digest(sign_callback(raw_body, key), signature_header):
        raise WebhookVerificationError("Upload signature mismatch")
