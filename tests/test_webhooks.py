from __future__ import annotations

import json
import time
from uuid import uuid4

import pytest
from sqlalchemy import select

from app.config import get_settings
from app.database import async_session_maker
from app.models import User, Video
from app.services import identity, mux, storage
from app.services.errors import WebhookVerificationError

settings = get_settings()


def _mux_request(payload: dict, secret: str | None = None, timestamp: int | None = None):
    body = json.dumps(payload).encode()
    signature = mux.sign_webhook(body, secret or settings.mux_webhook_secret, timestamp)
    return body, {"mux-signature": signature, "content-type": "application/json"}


async def _post_mux(client, payload: dict, **kwargs):
    body, headers = _mux_request(payload, **kwargs)
    return await client.post("/webhooks/mux", content=body, headers=headers)


async def _load(video_id) -> Video | None:
    async with async_session_maker() as db:
        return await db.get(Video, video_id)


def _ready_event(upload_id: str, playback_id: str = "play-1") -> dict:
    return {
        "type": "video.asset.ready",
        "data": {
            "id": "asset-1",
            "upload_id": upload_id,
            "status": "ready",
            "duration": 42.42,
            "playback_ids": [{"id": playback_id, "policy": "public"}],
        },
    }


async def test_mux_webhook_without_signature_is_unauthorized(client):
    response = await client.post("/webhooks/mux", json={"type": "video.asset.created", "data": {}})
    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


async def test_mux_webhook_with_wrong_secret_is_rejected(client):
    response = await _post_mux(client, {"type": "video.asset.created", "data": {}}, secret="not-the-secret")
    assert response.status_code == 400


async def test_mux_webhook_with_stale_timestamp_is_rejected(client):
    response = await _post_mux(
        client,
        {"type": "video.asset.created", "data": {"upload_id": "u"}},
        timestamp=int(time.time()) - 3600,
    )
    assert response.status_code == 400


async def test_mux_webhook_for_unknown_upload_is_a_no_op(client):
    response = await _post_mux(
        client,
        {"type": "video.asset.created", "data": {"id": "asset-x", "upload_id": "nobody", "status": "preparing"}},
    )
    assert response.status_code == 200
    assert response.text == "Webhook received"


async def test_asset_created_requires_upload_id(client):
    response = await _post_mux(client, {"type": "video.asset.created", "data": {"id": "asset-1"}})
    assert response.status_code == 400


async def test_asset_lifecycle_reaches_ready(client, make_user, make_video):
    owner = await make_user()
    video = await make_video(owner, mux_status="waiting", mux_upload_id="upload-1", visibility="private")

    created = await _post_mux(
        client,
        {"type": "video.asset.created", "data": {"id": "asset-1", "upload_id": "upload-1", "status": "preparing"}},
    )
    assert created.status_code == 200
    stored = await _load(video.id)
    assert stored.mux_status == "processing"
    assert stored.mux_asset_id == "asset-1"

    ready = await _post_mux(client, _ready_event("upload-1"))
    assert ready.status_code == 200
    stored = await _load(video.id)
    assert stored.mux_status == "ready"
    assert stored.mux_playback_id == "play-1"
    assert stored.duration == 42420
    assert stored.thumbnail_url == "https://image.mux.com/play-1/thumbnail.jpg"
    assert stored.preview_url == "https://image.mux.com/play-1/animated.gif"

    track = await _post_mux(
        client,
        {"type": "video.asset.track.ready", "data": {"id": "track-1", "asset_id": "asset-1", "status": "ready"}},
    )
    assert track.status_code == 200
    stored = await _load(video.id)
    assert stored.mux_track_id == "track-1"
    assert stored.mux_track_status == "ready"


async def test_replayed_asset_created_does_not_regress_ready_video(client, make_user, make_video):
    owner = await make_user()
    video = await make_video(owner, mux_status="waiting", mux_upload_id="upload-2")

    await _post_mux(client, _ready_event("upload-2", playback_id="play-2"))
    replay = await _post_mux(
        client,
        {"type": "video.asset.created", "data": {"id": "asset-1", "upload_id": "upload-2", "status": "preparing"}},
    )

    assert replay.status_code == 200
    stored = await _load(video.id)
    assert stored.mux_status == "ready"
    assert stored.mux_playback_id == "play-2"
    assert stored.mux_asset_id == "asset-1"


async def test_errored_video_stays_errored(client, make_user, make_video):
    owner = await make_user()
    video = await make_video(owner, mux_status="processing", mux_upload_id="upload-3")

    await _post_mux(
        client,
        {"type": "video.asset.errored", "data": {"id": "asset-3", "upload_id": "upload-3", "status": "errored"}},
    )
    await _post_mux(client, _ready_event("upload-3"))

    assert (await _load(video.id)).mux_status == "errored"


async def test_ready_requires_playback_id(client, make_user, make_video):
    owner = await make_user()
    await make_video(owner, mux_status="processing", mux_upload_id="upload-4")

    event = _ready_event("upload-4")
    event["data"]["playback_ids"] = []
    response = await _post_mux(client, event)
    assert response.status_code == 400


async def test_ready_with_malformed_playback_ids_is_bad_request(client, make_user, make_video):
    owner = await make_user()
    video = await make_video(owner, mux_status="processing", mux_upload_id="upload-6")

    for playback_ids in (["play-1"], [None], "play-1"):
        event = _ready_event("upload-6")
        event["data"]["playback_ids"] = playback_ids
        response = await _post_mux(client, event)
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing playback ID"

    assert (await _load(video.id)).mux_status == "processing"


async def test_asset_deleted_removes_the_video(client, make_user, make_video):
    owner = await make_user()
    video = await make_video(owner, mux_upload_id="upload-5")

    response = await _post_mux(client, {"type": "video.asset.deleted", "data": {"id": "a", "upload_id": "upload-5"}})

    assert response.status_code == 200
    assert await _load(video.id) is None


async def test_unknown_mux_event_is_acknowledged(client):
    response = await _post_mux(client, {"type": "video.upload.cancelled", "data": {"id": "x"}})
    assert response.status_code == 200


def _identity_request(payload: dict) -> tuple[bytes, dict]:
    body = json.dumps(payload).encode()
    msg_id = f"msg_{uuid4().hex}"
    timestamp = str(int(time.time()))
    signature = identity.sign_webhook(body, msg_id, timestamp, settings.identity_webhook_secret)
    return body, {"svix-id": msg_id, "svix-timestamp": timestamp, "svix-signature": signature}


async def test_identity_webhook_requires_svix_headers(client):
    body, headers = _identity_request({"type": "user.created", "data": {"id": "user_1"}})
    del headers["svix-signature"]

    response = await client.post("/webhooks/identity", content=body, headers=headers)
    assert response.status_code == 400


async def test_identity_webhook_rejects_bad_signature(client):
    body, headers = _identity_request({"type": "user.created", "data": {"id": "user_1"}})
    headers["svix-signature"] = "v1,AAAA"

    response = await client.post("/webhooks/identity", content=body, headers=headers)
    assert response.status_code == 400


async def test_identity_webhook_creates_updates_and_deletes_users(client):
    created = {
        "type": "user.created",
        "data": {"id": "user_abc", "first_name": "Ada", "last_name": "Lovelace", "image_url": "https://img.example/ada.png"},
    }
    body, headers = _identity_request(created)
    assert (await client.post("/webhooks/identity", content=body, headers=headers)).status_code == 200

    async with async_session_maker() as db:
        user = (await db.execute(select(User).where(User.external_id == "user_abc"))).scalar_one()
    assert user.name == "Ada Lovelace"

    updated = {"type": "user.updated", "data": {"id": "user_abc", "first_name": "Ada", "last_name": "King", "image_url": None}}
    body, headers = _identity_request(updated)
    assert (await client.post("/webhooks/identity", content=body, headers=headers)).status_code == 200
    async with async_session_maker() as db:
        user = (await db.execute(select(User).where(User.external_id == "user_abc"))).scalar_one()
    assert user.name == "Ada King"

    body, headers = _identity_request({"type": "user.deleted", "data": {"id": "user_abc"}})
    assert (await client.post("/webhooks/identity", content=body, headers=headers)).status_code == 200
    async with async_session_maker() as db:
        assert (await db.execute(select(User).where(User.external_id == "user_abc"))).scalar_one_or_none() is None


async def test_identity_delete_without_id_is_bad_request(client):
    body, headers = _identity_request({"type": "user.deleted", "data": {}})
    response = await client.post("/webhooks/identity", content=body, headers=headers)
    assert response.status_code == 400


def _upload_request(payload: dict) -> tuple[bytes, dict]:
    body = json.dumps(payload).encode()
    return body, {
        "x-uploadthing-signature": storage.sign_callback(body, settings.uploadthing_api_key),
        "content-type": "application/json",
    }


async def test_thumbnail_callback_for_unmatched_video_changes_nothing(client, make_user, make_video, monkeypatch):
    owner = await make_user()
    video = await make_video(owner, thumbnail_key="old", thumbnail_url="https://files.example/old")
    deleted = []

    async def fake_delete_files(keys):
        deleted.extend(keys)

    monkeypatch.setattr(storage, "delete_files", fake_delete_files)

    body, headers = _upload_request({
        "metadata": {"user_id": str(owner.id), "video_id": str(uuid4())},
        "file": {"key": "new", "url": "https://files.example/new"},
    })
    response = await client.post("/webhooks/uploads", params={"slug": "thumbnail"}, content=body, headers=headers)

    assert response.status_code == 200
    assert deleted == []
    stored = await _load(video.id)
    assert stored.thumbnail_key == "old"
    assert stored.thumbnail_url == "https://files.example/old"


async def test_thumbnail_callback_replaces_previous_file(client, make_user, make_video, monkeypatch):
    owner = await make_user()
    video = await make_video(owner, thumbnail_key="old", thumbnail_url="https://files.example/old")
    deleted = []

    async def fake_delete_files(keys):
        deleted.extend(keys)

    monkeypatch.setattr(storage, "delete_files", fake_delete_files)

    body, headers = _upload_request({
        "metadata": {"user_id": str(owner.id), "video_id": str(video.id)},
        "file": {"key": "new", "url": "https://files.example/new"},
    })
    response = await client.post("/webhooks/uploads", params={"slug": "thumbnail"}, content=body, headers=headers)

    assert response.status_code == 200
    assert deleted == ["old"]
    stored = await _load(video.id)
    assert stored.thumbnail_key == "new"
    assert stored.thumbnail_url == "https://files.example/new"


async def test_banner_callback_updates_user(client, make_user, monkeypatch):
    owner = await make_user()

    async def fake_delete_files(keys):
        raise AssertionError("nothing to delete")

    monkeypatch.setattr(storage, "delete_files", fake_delete_files)

    body, headers = _upload_request({
        "metadata": {"user_id": str(owner.id)},
        "file": {"key": "banner-1", "url": "https://files.example/banner-1"},
    })
    response = await client.post("/webhooks/uploads", params={"slug": "banner"}, content=body, headers=headers)

    assert response.status_code == 200
    async with async_session_maker() as db:
        user = await db.get(User, owner.id)
    assert user.banner_key == "banner-1"


async def test_upload_callback_with_bad_signature_is_rejected(client, make_user):
    owner = await make_user()
    body = json.dumps({
        "metadata": {"user_id": str(owner.id)},
        "file": {"key": "k", "url": "https://files.example/k"},
    }).encode()

    response = await client.post(
        "/webhooks/uploads",
        params={"slug": "banner"},
        content=body,
        headers={"x-uploadthing-signature": "hmac-sha256=deadbeef"},
    )
    assert response.status_code == 400


async def test_status_only_moves_forward():
    from app.models import VideoStatus
    from app.services.transcoding import can_transition

    assert can_transition(VideoStatus.WAITING, VideoStatus.PROCESSING)
    assert can_transition(VideoStatus.PROCESSING, VideoStatus.READY)
    assert can_transition(VideoStatus.PROCESSING, VideoStatus.ERRORED)
    assert not can_transition(VideoStatus.READY, VideoStatus.PROCESSING)
    assert not can_transition(VideoStatus.ERRORED, VideoStatus.READY)
    assert not can_transition(VideoStatus.PROCESSING, VideoStatus.WAITING)


async def test_mux_signature_accepts_any_matching_v1():
    body = b'{"type":"video.asset.ready"}'
    now = 1_700_000_000
    good = mux.sign_webhook(body, "secret", now).split("v1=")[1]

    mux.verify_webhook_signature(body, f"t={now},v1=deadbeef,v1={good}", secret="secret", now=now + 10)

    with pytest.raises(WebhookVerificationError):
        mux.verify_webhook_signature(body, f"t={now},v1={good}", secret="secret", now=now + 301)
    with pytest.raises(WebhookVerificationError):
        mux.verify_webhook_signature(body, "v1=abc", secret="secret", now=now)


async def test_mux_webhook_is_rejected_when_secret_is_unset(client, make_user, make_video, monkeypatch):
    owner = await make_user()
    video = await make_video(owner, mux_upload_id="upload-victim")
    monkeypatch.setattr(settings, "mux_webhook_secret", "")

    body = json.dumps({"type": "video.asset.deleted", "data": {"id": "a", "upload_id": "upload-victim"}}).encode()
    response = await client.post("/webhooks/mux", content=body, headers={"mux-signature": mux.sign_webhook(body, "")})

    assert response.status_code == 400
    assert await _load(video.id) is not None


async def test_identity_webhook_is_rejected_when_secret_is_unset(client, make_user, monkeypatch):
    owner = await make_user(external_id="user_keep")
    monkeypatch.setattr(settings, "identity_webhook_secret", "")

    body = json.dumps({"type": "user.deleted", "data": {"id": "user_keep"}}).encode()
    msg_id = f"msg_{uuid4().hex}"
    timestamp = str(int(time.time()))
    headers = {
        "svix-id": msg_id,
        "svix-timestamp": timestamp,
        "svix-signature": identity.sign_webhook(body, msg_id, timestamp, ""),
    }
    response = await client.post("/webhooks/identity", content=body, headers=headers)

    assert response.status_code == 400
    async with async_session_maker() as db:
        assert await db.get(User, owner.id) is not None


async def test_upload_callback_is_rejected_when_api_key_is_unset(client, make_user, monkeypatch):
    owner = await make_user()
    monkeypatch.setattr(settings, "uploadthing_api_key", "")

    body = json.dumps({
        "metadata": {"user_id": str(owner.id)},
        "file": {"key": "forged", "url": "https://files.example/forged"},
    }).encode()
    response = await client.post(
        "/webhooks/uploads",
        params={"slug": "banner"},
        content=body,
        headers={"x-uploadthing-signature": storage.sign_callback(body, "")},
    )

    assert response.status_code == 400
    async with async_session_maker() as db:
        user = await db.get(User, owner.id)
    assert user.banner_key is None
