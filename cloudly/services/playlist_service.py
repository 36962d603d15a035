# ============================================================================
# FILE: cloudly/services/playlist_service.py
# ============================================================================
from datetime import datetime
from typing import List, Optional, Sequence, Tuple
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from cloudly.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from cloudly.core.media_storage import MediaStorage, StoredAsset, cover_options, discard_asset
from cloudly.config import settings
from cloudly.db.models import Playlist, PlaylistSong, Song
from cloudly.db.session import Database
from cloudly.schemas.playlist import PlaylistCreate, PlaylistUpdate
import logging

logger = logging.getLogger(__name__)

def resequence(entries: Sequence[PlaylistSong]) -> None:
    """Assign contiguous 0-based positions following the given order"""
    for index, entry in enumerate(entries):
        if entry.position != index:
            entry.position = index

def validate_reorder(current_ids: Sequence[int], requested_ids: Sequence[int]) -> None:
    """
    A reorder must name every song already in the playlist exactly once.

    Raises ConflictError for duplicates, omissions or unknown songs.
    """
    if len(set(requested_ids)) != len(requested_ids):
        raise ConflictError("Reorder list contains duplicate songs")
    current = set(current_ids)
    requested = set(requested_ids)
    missing = current - requested
    unknown = requested - current
    if missing or unknown:
        raise ConflictError(
            f"Reorder list must contain exactly the playlist's songs "
            f"(missing: {sorted(missing)}, not in playlist: {sorted(unknown)})"
        )

def _detail_options():
    return selectinload(Playlist.entries).selectinload(PlaylistSong.song).selectinload(Song.uploader)

async def detach_song_everywhere(session: AsyncSession, song_id: int) -> List[int]:
    """Remove a song from every playlist holding it, compacting positions"""
    playlists = (await session.execute(
        select(Playlist)
        .join(PlaylistSong, PlaylistSong.playlist_id == Playlist.id)
        .where(PlaylistSong.song_id == song_id)
    )).unique().scalars().all()

    for playlist in playlists:
        for entry in [e for e in playlist.entries if e.song_id == song_id]:
            playlist.entries.remove(entry)
        resequence(playlist.entries)
        playlist.updated_at = datetime.utcnow()
    return [playlist.id for playlist in playlists]

class PlaylistService:
    """Service layer for playlist operations and song ordering"""

    def __init__(self, database: Database, media: Optional[MediaStorage] = None):
        self.database = database
        self.media = media

    async def _load(self, session: AsyncSession, playlist_id: int) -> Playlist:
        playlist = (await session.execute(
            select(Playlist).options(_detail_options()).where(Playlist.id == playlist_id)
        )).scalar_one_or_none()
        if playlist is None:
            raise NotFoundError("Playlist not found")
        return playlist

    async def _load_owned(self, session: AsyncSession, playlist_id: int, user_id: int,
                          expected_version: Optional[int] = None) -> Playlist:
        """Fetch a playlist for mutation, enforcing ownership and version"""
        playlist = await self._load(session, playlist_id)
        if playlist.created_by != user_id:
            if not playlist.is_public:
                raise NotFoundError("Playlist not found")
            raise PermissionDeniedError("You can only modify your own playlists")
        if expected_version is not None and playlist.version != expected_version:
            raise ConflictError("Playlist was modified, reload and retry")
        return playlist

    def _touch(self, playlist: Playlist) -> None:
        # Forces an UPDATE of the playlist row so the version counter advances
        playlist.updated_at = datetime.utcnow()

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create_playlist(self, user_id: int, playlist_data: PlaylistCreate) -> Playlist:
        """Create a new playlist for a user"""
        async with self.database.session_scope() as session:
            playlist = Playlist(
                created_by=user_id,
                name=playlist_data.name,
                description=playlist_data.description,
                is_public=playlist_data.is_public,
            )
            session.add(playlist)
            await session.flush()
            playlist = await self._load(session, playlist.id)
        logger.info(f"Playlist created: {playlist.id} for user {user_id}")
        return playlist

    async def get_user_playlists(self, user_id: int) -> List[Playlist]:
        """Get all playlists for a user, most recently updated first"""
        async with self.database.session_scope() as session:
            result = await session.execute(
                select(Playlist)
                .where(Playlist.created_by == user_id)
                .order_by(Playlist.updated_at.desc(), Playlist.id.desc())
            )
            return list(result.scalars().all())

    async def get_playlist(self, playlist_id: int, user_id: int) -> Playlist:
        """Get a playlist with its ordered songs; private playlists only for the owner"""
        async with self.database.session_scope() as session:
            playlist = await self._load(session, playlist_id)
        if playlist.created_by != user_id and not playlist.is_public:
            raise NotFoundError("Playlist not found")
        return playlist

    async def update_playlist(self, playlist_id: int, user_id: int, update_data: PlaylistUpdate) -> Playlist:
        """Update playlist details"""
        async with self.database.session_scope() as session:
            playlist = await self._load_owned(session, playlist_id, user_id)
            if update_data.name is not None:
                playlist.name = update_data.name
            if update_data.description is not None:
                playlist.description = update_data.description
            if update_data.is_public is not None:
                playlist.is_public = update_data.is_public
            self._touch(playlist)
        logger.info(f"Playlist updated: {playlist_id}")
        return playlist

    async def delete_playlist(self, playlist_id: int, user_id: int) -> Optional[str]:
        """Delete a playlist; returns the cover asset id left to clean up"""
        async with self.database.session_scope() as session:
            playlist = await self._load_owned(session, playlist_id, user_id)
            cover_public_id = playlist.cover_public_id
            await session.delete(playlist)
        logger.info(f"Playlist deleted: {playlist_id}")
        return cover_public_id

    async def set_cover(self, playlist_id: int, user_id: int, data: bytes,
                        filename: Optional[str] = None) -> Tuple[Playlist, Optional[str]]:
        """
        Replace the playlist cover.

        Returns the playlist and the previous cover id, which the caller
        discards off the request path.
        """
        if self.media is None:
            raise RuntimeError("PlaylistService was built without media storage")

        # Check ownership before spending an upload
        async with self.database.session_scope() as session:
            await self._load_owned(session, playlist_id, user_id)

        asset: StoredAsset = await self.media.store(data, cover_options(settings.MEDIA_FOLDER), filename)
        try:
            async with self.database.session_scope() as session:
                playlist = await self._load_owned(session, playlist_id, user_id)
                old_public_id = playlist.cover_public_id
                playlist.cover_url = asset.url
                playlist.cover_public_id = asset.public_id
                self._touch(playlist)
        except Exception:
            await discard_asset(self.media, asset.public_id)
            raise
        logger.info(f"Cover updated for playlist {playlist_id}")
        return playlist, old_public_id

    # ------------------------------------------------------------------
    # Song ordering
    # ------------------------------------------------------------------

    async def add_song(self, playlist_id: int, user_id: int, song_id: int) -> Playlist:
        """Append a song at the end of the playlist"""
        async with self.database.session_scope() as session:
            playlist = await self._load_owned(session, playlist_id, user_id)
            song = (await session.execute(
                select(Song).options(selectinload(Song.uploader)).where(Song.id == song_id)
            )).scalar_one_or_none()
            if song is None:
                raise NotFoundError("Song not found")
            if song_id in playlist.song_ids:
                raise ConflictError("Song already in playlist")

            entry = PlaylistSong(song_id=song.id, position=len(playlist.entries), added_at=datetime.utcnow())
            entry.song = song
            playlist.entries.append(entry)
            self._touch(playlist)
        logger.info(f"Song added to playlist {playlist_id}: {song_id}")
        return playlist

    async def remove_song(self, playlist_id: int, user_id: int, song_id: int) -> Playlist:
        """Remove a song and close the gap it leaves in the positions"""
        async with self.database.session_scope() as session:
            playlist = await self._load_owned(session, playlist_id, user_id)
            entry = next((e for e in playlist.entries if e.song_id == song_id), None)
            if entry is None:
                raise NotFoundError("Song not found in playlist")

            playlist.entries.remove(entry)
            resequence(playlist.entries)
            self._touch(playlist)
        logger.info(f"Song removed from playlist {playlist_id}: {song_id}")
        return playlist

    async def reorder_songs(self, playlist_id: int, user_id: int, song_ids: Sequence[int],
                            expected_version: Optional[int] = None) -> Playlist:
        """Rewrite positions so that song_ids[i] sits at position i"""
        async with self.database.session_scope() as session:
            playlist = await self._load_owned(session, playlist_id, user_id, expected_version)
            validate_reorder(playlist.song_ids, song_ids)

            by_song = {entry.song_id: entry for entry in playlist.entries}
            resequence([by_song[song_id] for song_id in song_ids])
            playlist.entries.sort(key=lambda e: e.position)
            self._touch(playlist)
        logger.info(f"Playlist {playlist_id} reordered ({len(song_ids)} songs)")
        return playlist
