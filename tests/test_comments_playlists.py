from __future__ import annotations

from uuid import uuid4

from sqlalchemy import func, select

from app.database import async_session_maker
from app.models import Comment


async def _comment(client, headers, video_id, value="Nice", parent_id=None):
    body = {"video_id": str(video_id), "value": value}
    if parent_id:
        body["parent_id"] = str(parent_id)
    return await client.post("/comments", json=body, headers=headers)


async def test_replies_are_one_level_deep(client, make_user, make_video, auth):
    user = await make_user()
    video = await make_video(user)
    headers = auth(user)

    top = await _comment(client, headers, video.id)
    assert top.status_code == 201
    reply = await _comment(client, headers, video.id, "Agreed", parent_id=top.json()["id"])
    assert reply.status_code == 201

    nested = await _comment(client, headers, video.id, "Too deep", parent_id=reply.json()["id"])
    assert nested.status_code == 400
    assert nested.json()["code"] == "BAD_REQUEST"


async def test_reply_to_unknown_parent_is_not_found(client, make_user, make_video, auth):
    user = await make_user()
    video = await make_video(user)

    response = await _comment(client, auth(user), video.id, parent_id=uuid4())
    assert response.status_code == 404


async def test_empty_comment_is_bad_request(client, make_user, make_video, auth):
    user = await make_user()
    video = await make_video(user)

    response = await _comment(client, auth(user), video.id, value="")
    assert response.status_code == 400


async def test_comment_listing_counts_replies_and_totals(client, make_user, make_video, auth):
    user = await make_user()
    video = await make_video(user)
    headers = auth(user)

    top = (await _comment(client, headers, video.id, "Top")).json()
    await _comment(client, headers, video.id, "Reply one", parent_id=top["id"])
    await _comment(client, headers, video.id, "Reply two", parent_id=top["id"])

    listing = (await client.get("/comments", params={"video_id": str(video.id)})).json()
    assert listing["total_count"] == 3
    assert [item["id"] for item in listing["items"]] == [top["id"]]
    assert listing["items"][0]["reply_count"] == 2
    assert listing["items"][0]["viewer_reaction"] is None

    replies = (
        await client.get("/comments", params={"video_id": str(video.id), "parent_id": top["id"]})
    ).json()
    assert {item["value"] for item in replies["items"]} == {"Reply one", "Reply two"}


async def test_deleting_a_comment_removes_its_replies(client, make_user, make_video, auth):
    user = await make_user()
    video = await make_video(user)
    headers = auth(user)

    top = (await _comment(client, headers, video.id, "Top")).json()
    await _comment(client, headers, video.id, "Reply", parent_id=top["id"])

    response = await client.delete(f"/comments/{top['id']}", headers=headers)
    assert response.status_code == 200

    async with async_session_maker() as db:
        remaining = (await db.execute(select(func.count()).select_from(Comment))).scalar_one()
    assert remaining == 0


async def test_only_the_author_can_delete_a_comment(client, make_user, make_video, auth):
    author = await make_user()
    stranger = await make_user()
    video = await make_video(author)
    top = (await _comment(client, auth(author), video.id)).json()

    response = await client.delete(f"/comments/{top['id']}", headers=auth(stranger))
    assert response.status_code == 404


async def test_adding_a_video_twice_conflicts(client, make_user, make_video, auth):
    user = await make_user()
    video = await make_video(user)
    headers = auth(user)

    playlist = (await client.post("/playlists", json={"name": "Favourites"}, headers=headers)).json()

    added = await client.post(f"/playlists/{playlist['id']}/videos/{video.id}", headers=headers)
    assert added.status_code == 201
    again = await client.post(f"/playlists/{playlist['id']}/videos/{video.id}", headers=headers)
    assert again.status_code == 409
    assert again.json()["code"] == "CONFLICT"

    videos = (await client.get(f"/playlists/{playlist['id']}/videos", headers=headers)).json()
    assert [item["id"] for item in videos["items"]] == [str(video.id)]

    for_video = (await client.get(f"/playlists/for-video/{video.id}", headers=headers)).json()
    assert for_video["items"][0]["contains_video"] is True
    assert for_video["items"][0]["video_count"] == 1


async def test_playlists_are_private_to_their_owner(client, make_user, auth):
    owner = await make_user()
    stranger = await make_user()
    playlist = (await client.post("/playlists", json={"name": "Mine"}, headers=auth(owner))).json()

    assert (await client.get(f"/playlists/{playlist['id']}", headers=auth(stranger))).status_code == 404
    assert (await client.delete(f"/playlists/{playlist['id']}", headers=auth(stranger))).status_code == 404
    assert (await client.delete(f"/playlists/{playlist['id']}", headers=auth(owner))).status_code == 200


async def test_removing_a_video_not_in_playlist_is_not_found(client, make_user, make_video, auth):
    user = await make_user()
    video = await make_video(user)
    headers = auth(user)
    playlist = (await client.post("/playlists", json={"name": "Empty"}, headers=headers)).json()

    response = await client.delete(f"/playlists/{playlist['id']}/videos/{video.id}", headers=headers)
    assert response.status_code == 404


async def test_liked_and_history_lists(client, make_user, make_video, auth):
    owner = await make_user()
    viewer = await make_user()
    liked = await make_video(owner, title="liked")
    watched = await make_video(owner, title="watched")
    headers = auth(viewer)

    await client.post(f"/videos/{liked.id}/like", headers=headers)
    await client.post(f"/videos/{watched.id}/views", headers=headers)

    liked_list = (await client.get("/playlists/liked", headers=headers)).json()
    assert [item["id"] for item in liked_list["items"]] == [str(liked.id)]
    assert liked_list["items"][0]["liked_at"]

    history = (await client.get("/playlists/history", headers=headers)).json()
    assert [item["id"] for item in history["items"]] == [str(watched.id)]
    assert history["items"][0]["view_count"] == 1
