"""Tests for profile stats, home feed and library aggregation."""

import asyncio

import pytest

from cloudly.core.exceptions import OperationFailedError
from cloudly.db.models import Song
from cloudly.services.library_service import LibraryService
from cloudly.services.song_service import SongService
from cloudly.schemas.song import SongCreate

from tests.conftest import at


@pytest.fixture
def service(database) -> LibraryService:
    return LibraryService(database, timeout=5.0, section_limit=10, library_song_limit=50)


@pytest.mark.asyncio
async def test_profile_stats_counts_only_own_records(service, make_user, make_song, make_playlist, like) -> None:
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    songs = [await make_song(alice, f"A{i}") for i in range(3)]
    bob_song = await make_song(bob, "B0")
    await make_playlist(alice, "One")
    await make_playlist(alice, "Two")
    await make_playlist(bob, "Bob's")
    await like(alice, bob_song)
    await like(bob, songs[0])
    await like(bob, songs[1])

    stats = await service.get_profile_stats(alice.id)

    assert (stats.songs_uploaded, stats.playlists_created, stats.liked_songs) == (3, 2, 1)


@pytest.mark.asyncio
async def test_recently_played_is_deduplicated_and_sorted(service, make_user, make_song, play) -> None:
    user = await make_user()
    a = await make_song(user, "A")
    b = await make_song(user, "B")
    c = await make_song(user, "C")
    await play(user, a, at(1))
    await play(user, b, at(2))
    await play(user, a, at(5))
    await play(user, c, at(3))
    await play(user, a, at(4))

    recent = await service.recently_played(user.id)

    assert [song.title for song in recent] == ["A", "C", "B"]
    assert [song.last_played for song in recent] == [at(5), at(3), at(2)]
    assert recent[0].uploader.name == "Alice"


@pytest.mark.asyncio
async def test_recently_played_caps_at_ten(service, make_user, make_song, play) -> None:
    user = await make_user()
    for i in range(12):
        song = await make_song(user, f"S{i}")
        await play(user, song, at(i))
        await play(user, song, at(i + 100))

    recent = await service.recently_played(user.id)

    assert len(recent) == 10
    ids = [song.id for song in recent]
    assert len(set(ids)) == len(ids)
    assert recent[0].title == "S11"
    assert recent[-1].title == "S2"


@pytest.mark.asyncio
async def test_recently_played_ignores_other_users(service, make_user, make_song, play) -> None:
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    song = await make_song(alice, "Mine")
    await play(bob, song, at(1))

    assert await service.recently_played(alice.id) == []


@pytest.mark.asyncio
async def test_home_feed_sections(service, make_user, make_song, make_playlist, like, play) -> None:
    alice = await make_user("Alice")
    bob = await make_user("Bob")
    old = await make_song(alice, "Old", created_at=at(0))
    mid = await make_song(bob, "Mid", created_at=at(10))
    new = await make_song(bob, "New", created_at=at(20))

    await make_playlist(alice, "Stale", songs=[old], updated_at=at(1))
    await make_playlist(alice, "Fresh", songs=[old, mid, new], updated_at=at(30))
    await make_playlist(bob, "Not mine", updated_at=at(50))

    await like(alice, mid, created_at=at(40))
    await like(alice, new, created_at=at(45))
    await play(alice, old, at(60))

    feed = await service.get_home_feed(alice.id)

    assert [s.title for s in feed.recently_played] == ["Old"]
    assert [(p.name, p.song_count) for p in feed.playlists] == [("Fresh", 3), ("Stale", 1)]
    assert [s.title for s in feed.liked_songs] == ["New", "Mid"]
    assert all(s.liked for s in feed.liked_songs)
    assert feed.liked_songs[0].uploader.name == "Bob"
    assert [s.title for s in feed.new_uploads] == ["New", "Mid", "Old"]
    assert feed.new_uploads[-1].uploader.name == "Alice"


@pytest.mark.asyncio
async def test_home_feed_sections_are_bounded(service, make_user, make_song, make_playlist, like) -> None:
    user = await make_user()
    songs = [await make_song(user, f"S{i}", created_at=at(i)) for i in range(12)]
    for i in range(12):
        await make_playlist(user, f"P{i}", updated_at=at(i))
        await like(user, songs[i], created_at=at(i))

    feed = await service.get_home_feed(user.id)

    assert len(feed.playlists) == 10
    assert feed.playlists[0].name == "P11"
    assert len(feed.liked_songs) == 10
    assert feed.liked_songs[0].title == "S11"
    assert len(feed.new_uploads) == 10
    assert feed.recently_played == []


@pytest.mark.asyncio
async def test_library_caps_uploaded_songs_at_fifty(service, database, make_user, make_playlist) -> None:
    user = await make_user()
    async with database.session_scope() as session:
        session.add_all([
            Song(
                title=f"T{i}",
                artist="Bulk",
                audio_url=f"https://media.test/{i}.mp3",
                audio_public_id=f"audio/{i}",
                uploaded_by=user.id,
                created_at=at(i),
            )
            for i in range(200)
        ])
    for i in range(12):
        await make_playlist(user, f"P{i}", updated_at=at(i))

    library = await service.get_library(user.id)

    assert len(library.uploaded_songs) == 50
    assert library.uploaded_songs[0].title == "T199"
    assert library.uploaded_songs[0].uploader is None
    assert len(library.playlists) == 12
    assert library.playlists[0].name == "P11"
    assert library.liked_songs_count == 0


@pytest.mark.asyncio
async def test_new_upload_shows_in_new_uploads_until_played(service, database, media, make_user) -> None:
    user = await make_user()
    songs = SongService(database, media)

    song = await songs.upload_song(user.id, SongCreate(title="Fresh Cut", artist="Me"), b"ID3audio", "cut.mp3")
    feed = await service.get_home_feed(user.id)
    assert song.id in [s.id for s in feed.new_uploads]
    assert song.id not in [s.id for s in feed.recently_played]

    await songs.record_play(song.id, user.id)
    feed = await service.get_home_feed(user.id)
    assert [s.id for s in feed.recently_played] == [song.id]


@pytest.mark.asyncio
async def test_failing_branch_fails_whole_feed(service, make_user, monkeypatch) -> None:
    user = await make_user()

    async def broken(user_id):
        raise RuntimeError("storage down")

    monkeypatch.setattr(service, "liked_songs", broken)

    with pytest.raises(RuntimeError):
        await service.get_home_feed(user.id)


@pytest.mark.asyncio
async def test_slow_branch_hits_deadline(database, make_user, monkeypatch) -> None:
    user = await make_user()
    service = LibraryService(database, timeout=0.05)

    async def slow(user_id):
        await asyncio.sleep(5)
        return 0

    monkeypatch.setattr(service, "count_liked_songs", slow)

    with pytest.raises(OperationFailedError):
        await service.get_profile_stats(user.id)
