# ============================================================================
# FILE: cloudly/services/song_service.py
# ============================================================================
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from cloudly.config import settings
from cloudly.core.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from cloudly.core.media_storage import MediaStorage, StoredAsset, audio_options, cover_options, discard_asset
from cloudly.db.models import LikedSong, ListeningHistory, Song
from cloudly.db.models.song import DEFAULT_ALBUM
from cloudly.db.session import Database
from cloudly.schemas.song import SongCreate
from cloudly.services.playlist_service import detach_song_everywhere
import logging

logger = logging.getLogger(__name__)

# (public_id, resource_type) pairs that should be removed from media storage
AssetRefs = List[Tuple[str, str]]

class SongService:
    """Service layer for the song catalogue, likes and play tracking"""

    def __init__(self, database: Database, media: Optional[MediaStorage] = None):
        self.database = database
        self.media = media

    async def upload_song(
        self,
        user_id: int,
        song_data: SongCreate,
        audio: bytes,
        audio_filename: Optional[str] = None,
        cover: Optional[bytes] = None,
        cover_filename: Optional[str] = None,
    ) -> Song:
        """
        Store the audio (and optional cover) then create the song row.

        Assets already stored are discarded if a later step fails, so a failed
        upload leaves nothing behind in media storage.
        """
        if self.media is None:
            raise RuntimeError("SongService was built without media storage")

        stored: AssetRefs = []
        try:
            audio_asset: StoredAsset = await self.media.store(
                audio, audio_options(settings.MEDIA_FOLDER), audio_filename
            )
            stored.append((audio_asset.public_id, "video"))

            cover_asset: Optional[StoredAsset] = None
            if cover is not None:
                cover_asset = await self.media.store(cover, cover_options(settings.MEDIA_FOLDER), cover_filename)
                stored.append((cover_asset.public_id, "image"))

            duration = song_data.duration
            if audio_asset.duration:
                duration = int(round(audio_asset.duration))

            async with self.database.session_scope() as session:
                song = Song(
                    title=song_data.title,
                    artist=song_data.artist,
                    album=song_data.album or DEFAULT_ALBUM,
                    audio_url=audio_asset.url,
                    audio_public_id=audio_asset.public_id,
                    cover_url=cover_asset.url if cover_asset else None,
                    cover_public_id=cover_asset.public_id if cover_asset else None,
                    duration=duration,
                    uploaded_by=user_id,
                )
                session.add(song)
                await session.flush()
                song = await self._load(session, song.id)
        except Exception:
            for public_id, resource_type in stored:
                await discard_asset(self.media, public_id, resource_type)
            raise

        logger.info(f"Song uploaded: {song.id} '{song.title}' by user {user_id}")
        return song

    async def _load(self, session, song_id: int) -> Song:
        song = (await session.execute(
            select(Song).options(selectinload(Song.uploader)).where(Song.id == song_id)
        )).scalar_one_or_none()
        if song is None:
            raise NotFoundError("Song not found")
        return song

    async def get_song(self, song_id: int) -> Song:
        async with self.database.session_scope() as session:
            return await self._load(session, song_id)

    async def list_songs(self, query: Optional[str] = None, page: int = 1, limit: int = 20) -> Tuple[List[Song], int]:
        """Newest songs first, optionally filtered by a title/artist/album substring"""
        conditions = []
        if query:
            term = query.strip()
            conditions.append(or_(
                Song.title.icontains(term, autoescape=True),
                Song.artist.icontains(term, autoescape=True),
                Song.album.icontains(term, autoescape=True),
            ))

        async with self.database.session_scope() as session:
            total = (await session.execute(
                select(func.count(Song.id)).where(*conditions)
            )).scalar_one()
            songs = (await session.execute(
                select(Song)
                .options(selectinload(Song.uploader))
                .where(*conditions)
                .order_by(Song.created_at.desc(), Song.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )).scalars().all()
        return list(songs), total

    async def delete_song(self, song_id: int, user_id: int) -> AssetRefs:
        """
        Delete a song owned by user_id.

        The song is detached from every playlist (positions compacted) and its
        likes and history are removed in the same transaction. Returns the
        media assets the caller should discard.
        """
        async with self.database.session_scope() as session:
            song = await self._load(session, song_id)
            if song.uploaded_by != user_id:
                raise PermissionDeniedError("You can only delete your own songs")

            playlist_ids = await detach_song_everywhere(session, song_id)
            await session.execute(delete(LikedSong).where(LikedSong.song_id == song_id))
            await session.execute(delete(ListeningHistory).where(ListeningHistory.song_id == song_id))
            await session.delete(song)

        assets: AssetRefs = [(song.audio_public_id, "video")]
        if song.cover_public_id:
            assets.append((song.cover_public_id, "image"))
        logger.info(f"Song deleted: {song_id} (removed from {len(playlist_ids)} playlists)")
        return assets

    async def like_song(self, song_id: int, user_id: int) -> LikedSong:
        """Like a song; liking it twice is a conflict"""
        async with self.database.session_scope() as session:
            await self._load(session, song_id)
            like = LikedSong(user_id=user_id, song_id=song_id)
            session.add(like)
            try:
                await session.flush()
            except IntegrityError:
                raise ConflictError("Song already liked")
        logger.info(f"User {user_id} liked song {song_id}")
        return like

    async def unlike_song(self, song_id: int, user_id: int) -> None:
        async with self.database.session_scope() as session:
            result = await session.execute(
                delete(LikedSong).where(LikedSong.song_id == song_id, LikedSong.user_id == user_id)
            )
            if result.rowcount == 0:
                raise NotFoundError("Song is not in your liked songs")
        logger.info(f"User {user_id} unliked song {song_id}")

    async def is_liked(self, song_id: int, user_id: int) -> bool:
        async with self.database.session_scope() as session:
            found = (await session.execute(
                select(LikedSong.id).where(LikedSong.song_id == song_id, LikedSong.user_id == user_id)
            )).first()
        return found is not None

    async def record_play(self, song_id: int, user_id: int) -> Tuple[int, datetime]:
        """Append a history entry and bump the play counter in one transaction"""
        played_at = datetime.utcnow()
        async with self.database.session_scope() as session:
            result = await session.execute(
                update(Song).where(Song.id == song_id).values(plays=Song.plays + 1)
            )
            if result.rowcount == 0:
                raise NotFoundError("Song not found")
            session.add(ListeningHistory(user_id=user_id, song_id=song_id, played_at=played_at))
            plays = (await session.execute(select(Song.plays).where(Song.id == song_id))).scalar_one()
        logger.debug(f"Play recorded: song {song_id} by user {user_id}")
        return plays, played_at
