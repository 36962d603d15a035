"""Shared fixtures: temporary SQLite database, in-memory media storage, row factories."""

import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import pytest
import pytest_asyncio

from cloudly.config import Settings
from cloudly.core.exceptions import MediaStorageError
from cloudly.core.media_storage import MediaStorage, StoredAsset, UploadOptions
from cloudly.db.models import LikedSong, ListeningHistory, Playlist, PlaylistSong, Song, User
from cloudly.db.session import Database

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


def at(minutes: int) -> datetime:
    """Deterministic timestamp BASE_TIME + minutes."""
    return BASE_TIME + timedelta(minutes=minutes)


class InMemoryMediaStorage(MediaStorage):
    """Media storage double that records every store and delete."""

    def __init__(self) -> None:
        self.assets: Dict[str, bytes] = {}
        self.options: Dict[str, UploadOptions] = {}
        self.deleted: List[str] = []
        self.fail_store_on: Optional[str] = None  # folder suffix that should fail
        self.fail_delete = False
        self.duration: Optional[float] = None
        self._counter = 0

    async def store(self, data: bytes, options: UploadOptions, filename: Optional[str] = None) -> StoredAsset:
        if self.fail_store_on and options.folder.endswith(self.fail_store_on):
            raise MediaStorageError("Failed to upload media")
        self._counter += 1
        public_id = f"{options.folder}/asset-{self._counter}"
        self.assets[public_id] = data
        self.options[public_id] = options
        duration = self.duration if options.resource_type == "video" else None
        return StoredAsset(url=f"https://media.test/{public_id}", public_id=public_id, duration=duration)

    async def delete(self, public_id: str, resource_type: str = "image") -> None:
        if self.fail_delete:
            raise MediaStorageError("delete failed")
        self.deleted.append(public_id)
        self.assets.pop(public_id, None)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        MEDIA_BACKEND="local",
        MEDIA_ROOT=str(tmp_path / "media"),
        QUERY_TIMEOUT_SECONDS=5.0,
    )


@pytest.fixture
def media() -> InMemoryMediaStorage:
    return InMemoryMediaStorage()


@pytest_asyncio.fixture
async def database(test_settings: Settings):
    db = Database(test_settings.DATABASE_URL)
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def make_user(database: Database):
    async def _make_user(name: str = "Alice") -> User:
        async with database.session_scope() as session:
            user = User(
                name=name,
                email=f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com",
                hashed_password="not-a-real-hash",
            )
            session.add(user)
        return user

    return _make_user


@pytest.fixture
def make_song(database: Database):
    async def _make_song(owner: User, title: str = "Song", created_at: Optional[datetime] = None) -> Song:
        async with database.session_scope() as session:
            song = Song(
                title=title,
                artist="Some Artist",
                audio_url=f"https://media.test/audio/{title}.mp3",
                audio_public_id=f"cloudly/audio/{title}",
                uploaded_by=owner.id,
                created_at=created_at or datetime.utcnow(),
            )
            session.add(song)
        return song

    return _make_song


@pytest.fixture
def make_playlist(database: Database):
    async def _make_playlist(
        owner: User,
        name: str = "Mix",
        songs: Optional[List[Song]] = None,
        updated_at: Optional[datetime] = None,
        is_public: bool = False,
    ) -> Playlist:
        async with database.session_scope() as session:
            playlist = Playlist(
                created_by=owner.id,
                name=name,
                is_public=is_public,
                updated_at=updated_at or datetime.utcnow(),
            )
            playlist.entries = [
                PlaylistSong(song_id=song.id, position=index) for index, song in enumerate(songs or [])
            ]
            session.add(playlist)
        return playlist

    return _make_playlist


@pytest.fixture
def play(database: Database):
    async def _play(user: User, song: Song, played_at: datetime) -> None:
        async with database.session_scope() as session:
            session.add(ListeningHistory(user_id=user.id, song_id=song.id, played_at=played_at))

    return _play


@pytest.fixture
def like(database: Database):
    async def _like(user: User, song: Song, created_at: Optional[datetime] = None) -> None:
        async with database.session_scope() as session:
            session.add(LikedSong(user_id=user.id, song_id=song.id, created_at=created_at or datetime.utcnow()))

    return _like
