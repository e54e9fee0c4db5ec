from __future__ import annotations

from app.database import async_session_maker
from app.models import Video
from app.services import mux, storage
from app.services.errors import ProviderError
from app.services.mux import AssetInfo, UploadSession
from app.services.storage import StoredFile


async def test_create_video_opens_upload_in_waiting(client, make_user, auth, monkeypatch):
    user = await make_user()
    calls = []

    async def fake_create_upload(user_id, cors_origin="*"):
        calls.append(user_id)
        return UploadSession(upload_id="upload-1", url="https://storage.mux.example/upload-1", status="waiting")

    monkeypatch.setattr(mux, "create_upload", fake_create_upload)

    response = await client.post("/videos", headers=auth(user))

    assert response.status_code == 201
    body = response.json()
    assert body["upload_url"] == "https://storage.mux.example/upload-1"
    assert body["video"]["mux_status"] == "waiting"
    assert body["video"]["mux_upload_id"] == "upload-1"
    assert body["video"]["visibility"] == "private"
    assert calls == [str(user.id)]


async def test_create_video_provider_failure_is_internal_error(client, make_user, auth, monkeypatch):
    user = await make_user()

    async def failing_create_upload(user_id, cors_origin="*"):
        raise ProviderError("mux down")

    monkeypatch.setattr(mux, "create_upload", failing_create_upload)

    response = await client.post("/videos", headers=auth(user))
    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL_SERVER_ERROR"


async def test_only_owner_can_update(client, make_user, make_video, make_category, auth):
    owner = await make_user()
    stranger = await make_user()
    category = await make_category("Gaming")
    video = await make_video(owner, visibility="private")

    denied = await client.put(f"/videos/{video.id}", json={"title": "Hijacked"}, headers=auth(stranger))
    assert denied.status_code == 404

    updated = await client.put(
        f"/videos/{video.id}",
        json={"title": "Better title", "visibility": "public", "category_id": str(category.id)},
        headers=auth(owner),
    )
    assert updated.status_code == 200
    body = updated.json()
    assert body["title"] == "Better title"
    assert body["visibility"] == "public"
    assert body["category_id"] == str(category.id)


async def test_private_video_visible_to_owner_only(client, make_user, make_video, auth):
    owner = await make_user()
    stranger = await make_user()
    video = await make_video(owner, visibility="private")

    assert (await client.get(f"/videos/{video.id}")).status_code == 404
    assert (await client.get(f"/videos/{video.id}", headers=auth(stranger))).status_code == 404
    assert (await client.get(f"/videos/{video.id}", headers=auth(owner))).status_code == 200


async def test_delete_cleans_up_external_assets_best_effort(client, make_user, make_video, auth, monkeypatch):
    owner = await make_user()
    video = await make_video(owner, mux_asset_id="asset-1", thumbnail_key="thumb-key")
    deleted_files = []

    async def failing_delete_asset(asset_id):
        raise ProviderError("mux unavailable")

    async def fake_delete_files(keys):
        deleted_files.extend(keys)

    monkeypatch.setattr(mux, "delete_asset", failing_delete_asset)
    monkeypatch.setattr(storage, "delete_files", fake_delete_files)

    response = await client.delete(f"/videos/{video.id}", headers=auth(owner))

    assert response.status_code == 200
    assert deleted_files == ["thumb-key"]
    async with async_session_maker() as db:
        assert await db.get(Video, video.id) is None


async def test_restore_thumbnail_requires_playback_id(client, make_user, make_video, auth):
    owner = await make_user()
    video = await make_video(owner, mux_playback_id=None)

    response = await client.post(f"/videos/{video.id}/restore-thumbnail", headers=auth(owner))
    assert response.status_code == 400


async def test_restore_thumbnail_replaces_custom_file(client, make_user, make_video, auth, monkeypatch):
    owner = await make_user()
    video = await make_video(owner, mux_playback_id="play-1", thumbnail_key="custom", thumbnail_url="https://files.example/custom")
    deleted, ingested = [], []

    async def fake_delete_files(keys):
        deleted.extend(keys)

    async def fake_upload_from_url(url):
        ingested.append(url)
        return StoredFile(key="restored", url="https://files.example/restored")

    monkeypatch.setattr(storage, "delete_files", fake_delete_files)
    monkeypatch.setattr(storage, "upload_from_url", fake_upload_from_url)

    response = await client.post(f"/videos/{video.id}/restore-thumbnail", headers=auth(owner))

    assert response.status_code == 200
    assert response.json()["thumbnail_url"] == "https://files.example/restored"
    assert deleted == ["custom"]
    assert ingested == ["https://image.mux.com/play-1/thumbnail.jpg"]


async def test_revalidate_pulls_asset_state(client, make_user, make_video, auth, monkeypatch):
    owner = await make_user()
    video = await make_video(owner, mux_status="waiting", mux_upload_id="upload-9")

    async def fake_retrieve_upload(upload_id):
        return UploadSession(upload_id=upload_id, url="", status="asset_created", asset_id="asset-9")

    async def fake_retrieve_asset(asset_id):
        return AssetInfo(asset_id=asset_id, status="ready", playback_id="play-9", duration_seconds=12.5)

    monkeypatch.setattr(mux, "retrieve_upload", fake_retrieve_upload)
    monkeypatch.setattr(mux, "retrieve_asset", fake_retrieve_asset)

    response = await client.post(f"/videos/{video.id}/revalidate", headers=auth(owner))

    assert response.status_code == 200
    body = response.json()
    assert body["mux_status"] == "ready"
    assert body["mux_asset_id"] == "asset-9"
    assert body["mux_playback_id"] == "play-9"
    assert body["duration"] == 12500


async def test_revalidate_without_upload_is_bad_request(client, make_user, make_video, auth):
    owner = await make_user()
    video = await make_video(owner, mux_upload_id=None)

    response = await client.post(f"/videos/{video.id}/revalidate", headers=auth(owner))
    assert response.status_code == 400


async def test_search_matches_title_case_insensitively(client, make_user, make_video):
    owner = await make_user()
    match = await make_video(owner, title="Cooking Leek Soup")
    await make_video(owner, title="Microservices talk")

    body = (await client.get("/search", params={"query": "leek"})).json()
    assert [item["id"] for item in body["items"]] == [str(match.id)]


async def test_studio_lists_own_videos_with_counts(client, make_user, make_video, auth):
    owner = await make_user()
    other = await make_user()
    mine = await make_video(owner, visibility="private", mux_status="waiting")
    await make_video(other)

    body = (await client.get("/studio/videos", headers=auth(owner))).json()
    assert [item["id"] for item in body["items"]] == [str(mine.id)]
    assert body["items"][0]["view_count"] == 0
    assert body["items"][0]["comment_count"] == 0


async def test_suggestions_share_the_category(client, make_user, make_video, make_category):
    owner = await make_user()
    music = await make_category("Music")
    comedy = await make_category("Comedy")
    current = await make_video(owner, category_id=music.id)
    related = await make_video(owner, category_id=music.id)
    await make_video(owner, category_id=comedy.id)

    body = (await client.get(f"/videos/{current.id}/suggestions")).json()
    assert [item["id"] for item in body["items"]] == [str(related.id)]


async def test_categories_and_health(client, make_category):
    await make_category("Sports")
    await make_category("Comedy")

    categories = (await client.get("/categories")).json()
    assert [c["name"] for c in categories] == ["Comedy", "Sports"]
    assert categories[0]["description"] == "Videos related to comedy"
    assert set(categories[0]) == {"id", "name", "description", "created_at"}
    assert (await client.get("/health")).json() == {"status": "healthy"}
