"""
Identity provider webhook verification (Svix signing scheme).
"""
import base64
import hashlib
import hmac
import time
from typing import Optional

from app.config import get_settings
from app.services.errors import WebhookVerificationError

SECRET_PREFIX = "whsec_"
TOLERANCE_SECONDS = 300


def _secret_bytes(secret: str) -> bytes:
    if secret.startswith(SECRET_PREFIX):
        secret = secret[len(SECRET_PREFIX):]
    try:
        return base64.b64decode(secret)
    except ValueError as e:
        raise WebhookVerificationError("Invalid webhook secret") from e


def _sign(secret: bytes, msg_id: str, timestamp: str, raw_body: bytes) -> str:
    payload = f"{msg_id}.{timestamp}.".encode() + raw_body
    return base64.b64encode(hmac.new(secret, payload, hashlib.sha256).digest()).decode()


def verify_webhook(
    raw_body: bytes,
    msg_id: str,
    timestamp: str,
    signature_header: str,
    secret: Optional[str] = None,
    now: Optional[float] = None,
) -> None:
    """
    Verify ``svix-signature`` (space separated ``v1,<base64>`` entries) over
    ``"<svix-id>.<svix-timestamp>.<raw body>"``.
    """
    secret = secret if secret is not None else get_settings().identity_webhook_secret
    if not secret:
        raise WebhookVerificationError("IDENTITY_WEBHOOK_SECRET is not set")
    key = _secret_bytes(secret)

    try:
        ts = int(timestamp)
    except ValueError:
        raise WebhookVerificationError("Invalid svix-timestamp")

    current = now if now is not None else time.time()
    if abs(current - ts) > TOLERANCE_SECONDS:
        raise WebhookVerificationError("svix-timestamp outside tolerance")

    expected = _sign(key, msg_id, timestamp, raw_body)
    for entry in signature_header.split():
        version, _, signature = entry.partition(",")
        if version == "v1" and hmac.compare_digest(expected, signature):
            return

    raise WebhookVerificationError("No matching signature")


def sign_webhook(raw_body: bytes, msg_id: str, timestamp: str, secret: str) -> str:
    return f"v1,{_sign(_secret_bytes(secret), msg_id, timestamp, raw_body)}"
