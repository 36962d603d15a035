# ============================================================================
# FILE: cloudly/services/library_service.py
# ============================================================================
"""
Read-side aggregation for the profile, home feed and library views.

Each view fans out independent queries, every branch on its own session, and
joins the results in memory once all of them have completed.
"""
from typing import Dict, List, Optional
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload
from cloudly.config import settings
from cloudly.core.concurrency import fan_out
from cloudly.db.models import LikedSong, ListeningHistory, Playlist, PlaylistSong, Song
from cloudly.db.session import Database
from cloudly.schemas.feed import HomeFeed, LibraryResponse
from cloudly.schemas.playlist import PlaylistResponse, PlaylistSummary
from cloudly.schemas.song import LikedSongResponse, RecentlyPlayedSong, SongResponse
from cloudly.schemas.user import ProfileStats
import logging

logger = logging.getLogger(__name__)

class LibraryService:
    """Service layer for per-user dashboard and library queries"""

    def __init__(self, database: Database, timeout: Optional[float] = None,
                 section_limit: Optional[int] = None, library_song_limit: Optional[int] = None):
        self.database = database
        self.timeout = timeout if timeout is not None else settings.QUERY_TIMEOUT_SECONDS
        self.section_limit = section_limit or settings.HOME_SECTION_LIMIT
        self.library_song_limit = library_song_limit or settings.LIBRARY_SONG_LIMIT

    # ------------------------------------------------------------------
    # Single-query building blocks (each opens its own session)
    # ------------------------------------------------------------------

    async def _count(self, stmt) -> int:
        async with self.database.session_scope() as session:
            return (await session.execute(stmt)).scalar_one()

    async def count_uploaded_songs(self, user_id: int) -> int:
        return await self._count(select(func.count(Song.id)).where(Song.uploaded_by == user_id))

    async def count_playlists(self, user_id: int) -> int:
        return await self._count(select(func.count(Playlist.id)).where(Playlist.created_by == user_id))

    async def count_liked_songs(self, user_id: int) -> int:
        return await self._count(select(func.count(LikedSong.id)).where(LikedSong.user_id == user_id))

    async def recently_played(self, user_id: int, limit: Optional[int] = None) -> List[RecentlyPlayedSong]:
        """
        Most recent play per song, newest first.

        History is grouped by song keeping max(played_at); songs that no
        longer exist are dropped rather than returned as gaps.
        """
        limit = limit or self.section_limit
        last_played = func.max(ListeningHistory.played_at).label("last_played")
        history_stmt = (
            select(ListeningHistory.song_id, last_played)
            .where(ListeningHistory.user_id == user_id)
            .group_by(ListeningHistory.song_id)
            .order_by(last_played.desc(), ListeningHistory.song_id.desc())
            .limit(limit)
        )

        async with self.database.session_scope() as session:
            history = (await session.execute(history_stmt)).all()
            if not history:
                return []

            song_ids = [row.song_id for row in history]
            songs = (await session.execute(
                select(Song)
                .options(selectinload(Song.uploader))
                .where(Song.id.in_(song_ids))
            )).scalars().all()

        songs_by_id: Dict[int, Song] = {song.id: song for song in songs}
        result = []
        for row in history:
            song = songs_by_id.get(row.song_id)
            if song is None:
                continue
            data = SongResponse.model_validate(song).model_dump()
            result.append(RecentlyPlayedSong(**data, last_played=row.last_played))
        return result

    async def recent_playlists(self, user_id: int) -> List[PlaylistSummary]:
        """The user's most recently updated playlists as (name, cover, song count)"""
        song_count = (
            select(func.count(PlaylistSong.id))
            .where(PlaylistSong.playlist_id == Playlist.id)
            .correlate(Playlist)
            .scalar_subquery()
        )
        stmt = (
            select(Playlist.id, Playlist.name, Playlist.cover_url, song_count.label("song_count"))
            .where(Playlist.created_by == user_id)
            .order_by(Playlist.updated_at.desc(), Playlist.id.desc())
            .limit(self.section_limit)
        )
        async with self.database.session_scope() as session:
            rows = (await session.execute(stmt)).all()
        return [PlaylistSummary(**row._mapping) for row in rows]

    async def liked_songs(self, user_id: int, limit: Optional[int] = None, offset: int = 0) -> List[LikedSongResponse]:
        """Liked songs, most recently liked first, tagged liked=True"""
        stmt = (
            select(LikedSong)
            .options(selectinload(LikedSong.song).selectinload(Song.uploader))
            .where(LikedSong.user_id == user_id)
            .order_by(LikedSong.created_at.desc(), LikedSong.id.desc())
            .offset(offset)
            .limit(limit or self.section_limit)
        )
        async with self.database.session_scope() as session:
            likes = (await session.execute(stmt)).scalars().all()
        return [
            LikedSongResponse(**SongResponse.model_validate(like.song).model_dump(), liked=True)
            for like in likes
            if like.song is not None
        ]

    async def new_uploads(self) -> List[SongResponse]:
        """Newest songs across all users"""
        stmt = (
            select(Song)
            .options(selectinload(Song.uploader))
            .order_by(Song.created_at.desc(), Song.id.desc())
            .limit(self.section_limit)
        )
        async with self.database.session_scope() as session:
            songs = (await session.execute(stmt)).scalars().all()
        return [SongResponse.model_validate(song) for song in songs]

    async def uploaded_songs(self, user_id: int) -> List[SongResponse]:
        # Column projection only; library rows carry no uploader
        stmt = (
            select(*Song.__table__.columns)
            .where(Song.uploaded_by == user_id)
            .order_by(Song.created_at.desc(), Song.id.desc())
            .limit(self.library_song_limit)
        )
        async with self.database.session_scope() as session:
            rows = (await session.execute(stmt)).all()
        return [SongResponse(**row._mapping) for row in rows]

    async def all_playlists(self, user_id: int) -> List[PlaylistResponse]:
        stmt = (
            select(Playlist)
            .where(Playlist.created_by == user_id)
            .order_by(Playlist.updated_at.desc(), Playlist.id.desc())
        )
        async with self.database.session_scope() as session:
            playlists = (await session.execute(stmt)).scalars().all()
        return [PlaylistResponse.model_validate(playlist) for playlist in playlists]

    # ------------------------------------------------------------------
    # Aggregated views
    # ------------------------------------------------------------------

    async def get_profile_stats(self, user_id: int) -> ProfileStats:
        """Counts of uploads, playlists and likes for a user"""
        songs_uploaded, playlists_created, liked = await fan_out(
            self.count_uploaded_songs(user_id),
            self.count_playlists(user_id),
            self.count_liked_songs(user_id),
            timeout=self.timeout,
        )
        return ProfileStats(
            songs_uploaded=songs_uploaded,
            playlists_created=playlists_created,
            liked_songs=liked,
        )

    async def get_home_feed(self, user_id: int) -> HomeFeed:
        """Dashboard: recently played, own playlists, liked songs, global new uploads"""
        recently_played, playlists, liked, new_uploads = await fan_out(
            self.recently_played(user_id),
            self.recent_playlists(user_id),
            self.liked_songs(user_id),
            self.new_uploads(),
            timeout=self.timeout,
        )
        logger.debug(
            f"Home feed for user {user_id}: {len(recently_played)} recent, "
            f"{len(playlists)} playlists, {len(liked)} liked, {len(new_uploads)} new"
        )
        return HomeFeed(
            recently_played=recently_played,
            playlists=playlists,
            liked_songs=liked,
            new_uploads=new_uploads,
        )

    async def get_library(self, user_id: int) -> LibraryResponse:
        uploaded, playlists, liked_count = await fan_out(
            self.uploaded_songs(user_id),
            self.all_playlists(user_id),
            self.count_liked_songs(user_id),
            timeout=self.timeout,
        )
        return LibraryResponse(
            uploaded_songs=uploaded,
            playlists=playlists,
            liked_songs_count=liked_count,
        )
