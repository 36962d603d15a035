"""HTTP tests for the auth, user, song and playlist routers."""

from typing import Dict

import pytest
from fastapi.testclient import TestClient

from cloudly.main import create_app
from tests.conftest import InMemoryMediaStorage

API = "/api/v1"
MP3 = ("song.mp3", b"ID3\x03\x00fake-audio", "audio/mpeg")
PNG = ("cover.png", b"\x89PNGfake-image", "image/png")


@pytest.fixture
def client(test_settings, media: InMemoryMediaStorage):
    app = create_app(test_settings, media_storage=media)
    with TestClient(app) as test_client:
        yield test_client


def register(client: TestClient, name: str = "Alice", email: str = "alice@example.com") -> Dict[str, str]:
    response = client.post(f"{API}/auth/register", json={"name": name, "email": email, "password": "secret1"})
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def upload(client: TestClient, headers: Dict[str, str], title: str) -> dict:
    response = client.post(
        f"{API}/songs/upload",
        data={"title": title, "artist": "Band"},
        files={"audio": MP3},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "healthy"}


def test_register_login_and_me(client) -> None:
    headers = register(client)

    me = client.get(f"{API}/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["email"] == "alice@example.com"

    login = client.post(f"{API}/auth/login", json={"email": "alice@example.com", "password": "secret1"})
    assert login.status_code == 200
    assert login.json()["user"]["name"] == "Alice"

    bad = client.post(f"{API}/auth/login", json={"email": "alice@example.com", "password": "nope"})
    assert bad.status_code == 401

    duplicate = client.post(
        f"{API}/auth/register", json={"name": "Again", "email": "alice@example.com", "password": "secret1"}
    )
    assert duplicate.status_code == 400


def test_protected_routes_require_token(client) -> None:
    assert client.get(f"{API}/users/home").status_code == 401
    assert client.get(f"{API}/users/home", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_register_validates_fields(client) -> None:
    response = client.post(f"{API}/auth/register", json={"name": "", "email": "not-an-email", "password": "123"})

    assert response.status_code == 422
    fields = {error["loc"][-1] for error in response.json()["detail"]}
    assert {"name", "email", "password"} <= fields


def test_upload_appears_in_new_uploads_then_recently_played(client) -> None:
    headers = register(client)
    song = upload(client, headers, "First Light")
    assert song["album"] == "Unknown Album"
    assert song["uploader"]["name"] == "Alice"

    home = client.get(f"{API}/users/home", headers=headers).json()
    assert [s["id"] for s in home["new_uploads"]] == [song["id"]]
    assert home["recently_played"] == []

    played = client.post(f"{API}/songs/{song['id']}/play", headers=headers)
    assert played.json()["plays"] == 1

    home = client.get(f"{API}/users/home", headers=headers).json()
    assert [s["id"] for s in home["recently_played"]] == [song["id"]]
    assert "last_played" in home["recently_played"][0]


def test_upload_rejects_wrong_file_type(client) -> None:
    headers = register(client)

    response = client.post(
        f"{API}/songs/upload",
        data={"title": "Bad", "artist": "Band"},
        files={"audio": ("notes.txt", b"hello", "text/plain")},
        headers=headers,
    )

    assert response.status_code == 400
    assert "Invalid audio file type" in response.json()["detail"]


def test_like_twice_is_conflict_and_profile_counts(client) -> None:
    headers = register(client)
    song = upload(client, headers, "Loved")

    assert client.post(f"{API}/songs/{song['id']}/like", headers=headers).status_code == 201
    assert client.post(f"{API}/songs/{song['id']}/like", headers=headers).status_code == 409

    profile = client.get(f"{API}/users/profile", headers=headers).json()
    assert profile["stats"] == {"songs_uploaded": 1, "playlists_created": 0, "liked_songs": 1}

    liked = client.get(f"{API}/songs/liked", headers=headers).json()
    assert [(s["id"], s["liked"]) for s in liked] == [(song["id"], True)]


def test_playlist_ordering_flow(client) -> None:
    headers = register(client)
    a, b, c = (upload(client, headers, title)["id"] for title in ("A", "B", "C"))

    created = client.post(f"{API}/playlists", json={"name": "Queue"}, headers=headers)
    assert created.status_code == 201
    playlist_id = created.json()["id"]

    for song_id in (a, b, c):
        response = client.post(f"{API}/playlists/{playlist_id}/songs", json={"song_id": song_id}, headers=headers)
        assert response.status_code == 200
    assert client.post(
        f"{API}/playlists/{playlist_id}/songs", json={"song_id": a}, headers=headers
    ).status_code == 409

    removed = client.delete(f"{API}/playlists/{playlist_id}/songs/{b}", headers=headers).json()
    assert [(e["song"]["id"], e["position"]) for e in removed["songs"]] == [(a, 0), (c, 1)]
    assert removed["song_count"] == 2

    mismatch = client.put(f"{API}/playlists/{playlist_id}/reorder", json={"song_ids": [c]}, headers=headers)
    assert mismatch.status_code == 409

    reordered = client.put(
        f"{API}/playlists/{playlist_id}/reorder",
        json={"song_ids": [c, a], "version": removed["version"]},
        headers=headers,
    )
    assert reordered.status_code == 200
    assert [(e["song"]["id"], e["position"]) for e in reordered.json()["songs"]] == [(c, 0), (a, 1)]

    stale = client.put(
        f"{API}/playlists/{playlist_id}/reorder",
        json={"song_ids": [a, c], "version": removed["version"]},
        headers=headers,
    )
    assert stale.status_code == 409

    library = client.get(f"{API}/users/library", headers=headers).json()
    assert [p["id"] for p in library["playlists"]] == [playlist_id]
    assert len(library["uploaded_songs"]) == 3


def test_playlist_ownership_and_visibility(client) -> None:
    owner = register(client, "Owner", "owner@example.com")
    other = register(client, "Other", "other@example.com")
    song_id = upload(client, owner, "Mine")["id"]
    playlist_id = client.post(f"{API}/playlists", json={"name": "Private"}, headers=owner).json()["id"]

    assert client.get(f"{API}/playlists/{playlist_id}", headers=other).status_code == 404
    response = client.post(f"{API}/playlists/{playlist_id}/songs", json={"song_id": song_id}, headers=other)
    assert response.status_code == 404
    renamed = client.put(f"{API}/playlists/{playlist_id}", json={"name": "Taken"}, headers=other)
    assert renamed.status_code == 404
    assert client.get(f"{API}/playlists/999", headers=owner).status_code == 404

    client.put(f"{API}/playlists/{playlist_id}", json={"is_public": True}, headers=owner)
    assert client.get(f"{API}/playlists/{playlist_id}", headers=other).status_code == 200
    response = client.post(f"{API}/playlists/{playlist_id}/songs", json={"song_id": song_id}, headers=other)
    assert response.status_code == 403


def test_playlist_name_length_validated(client) -> None:
    headers = register(client)

    response = client.post(f"{API}/playlists", json={"name": "x" * 101}, headers=headers)

    assert response.status_code == 422


def test_delete_song_removes_it_everywhere(client, media) -> None:
    headers = register(client)
    keep = upload(client, headers, "Keep")["id"]
    drop = upload(client, headers, "Drop")
    playlist_id = client.post(f"{API}/playlists", json={"name": "P"}, headers=headers).json()["id"]
    for song_id in (drop["id"], keep):
        client.post(f"{API}/playlists/{playlist_id}/songs", json={"song_id": song_id}, headers=headers)

    assert client.delete(f"{API}/songs/{drop['id']}", headers=headers).status_code == 200

    assert client.get(f"{API}/songs/{drop['id']}", headers=headers).status_code == 404
    playlist = client.get(f"{API}/playlists/{playlist_id}", headers=headers).json()
    assert [(e["song"]["id"], e["position"]) for e in playlist["songs"]] == [(keep, 0)]
    assert len(media.deleted) == 1


def test_profile_update_replaces_avatar(client, media) -> None:
    headers = register(client)

    first = client.put(f"{API}/users/profile", data={"name": "Alice B"}, files={"avatar": PNG}, headers=headers)
    assert first.status_code == 200
    assert first.json()["user"]["name"] == "Alice B"
    first_url = first.json()["user"]["avatar_url"]
    assert first_url.startswith("https://media.test/cloudly/avatars/")

    second = client.put(f"{API}/users/profile", files={"avatar": PNG}, headers=headers)
    assert second.json()["user"]["avatar_url"] != first_url
    assert media.deleted == [first_url.replace("https://media.test/", "")]


def test_search_songs(client) -> None:
    headers = register(client)
    upload(client, headers, "Summer Rain")
    upload(client, headers, "Winter Sun")

    result = client.get(f"{API}/songs", params={"q": "rain"}, headers=headers).json()

    assert result["total"] == 1
    assert result["pages"] == 1
    assert result["songs"][0]["title"] == "Summer Rain"
