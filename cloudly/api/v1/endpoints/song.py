# ============================================================================
# FILE: cloudly/api/v1/endpoints/song.py
# ============================================================================
from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import ValidationError
from typing import List, Optional
from cloudly.api.dependencies import (
    get_library_service,
    get_media_storage,
    get_song_service,
    require_current_user,
)
from cloudly.api.uploads import AUDIO_MIME_TYPES, IMAGE_MIME_TYPES, read_upload
from cloudly.config import settings
from cloudly.core.media_storage import MediaStorage, discard_asset
from cloudly.db.models.user import User
from cloudly.schemas.song import (
    LikedSongResponse,
    PlayResponse,
    RecentlyPlayedSong,
    SongCreate,
    SongListResponse,
    SongResponse,
)
from cloudly.services.library_service import LibraryService
from cloudly.services.song_service import SongService
import logging
import math

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/upload", response_model=SongResponse, status_code=status.HTTP_201_CREATED)
async def upload_song(
    title: str = Form(...),
    artist: str = Form(...),
    album: Optional[str] = Form(None),
    duration: int = Form(0),
    audio: UploadFile = File(...),
    cover: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_current_user),
    song_service: SongService = Depends(get_song_service)
):
    """
    Upload a song (multipart: audio file, optional cover image, metadata)
    Requires authentication
    """
    try:
        song_data = SongCreate(title=title, artist=artist, album=album or None, duration=duration)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors(include_url=False, include_context=False))

    audio_bytes = await read_upload(audio, AUDIO_MIME_TYPES, settings.MAX_AUDIO_SIZE, "audio")
    cover_bytes = None
    if cover is not None and cover.filename:
        cover_bytes = await read_upload(cover, IMAGE_MIME_TYPES, settings.MAX_IMAGE_SIZE, "image")

    song = await song_service.upload_song(
        current_user.id,
        song_data,
        audio_bytes,
        audio_filename=audio.filename,
        cover=cover_bytes,
        cover_filename=cover.filename if cover_bytes is not None else None,
    )
    return SongResponse.model_validate(song)

@router.get("", response_model=SongListResponse)
async def list_songs(
    q: Optional[str] = Query(None, max_length=100, description="Match title, artist or album"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    current_user: User = Depends(require_current_user),
    song_service: SongService = Depends(get_song_service)
):
    """
    Browse all songs, newest first, with optional text search
    Requires authentication
    """
    songs, total = await song_service.list_songs(q, page, limit)
    return SongListResponse(
        songs=[SongResponse.model_validate(song) for song in songs],
        total=total,
        page=page,
        pages=math.ceil(total / limit) if total else 0,
    )

@router.get("/liked", response_model=List[LikedSongResponse])
async def get_liked_songs(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_current_user),
    library_service: LibraryService = Depends(get_library_service)
):
    """
    Liked songs, most recently liked first
    Requires authentication
    """
    return await library_service.liked_songs(current_user.id, limit=limit, offset=offset)

@router.get("/recent", response_model=List[RecentlyPlayedSong])
async def get_recently_played(
    limit: int = Query(20, ge=1, le=50),
    current_user: User = Depends(require_current_user),
    library_service: LibraryService = Depends(get_library_service)
):
    """
    Recently played songs, one entry per song, most recent play first
    Requires authentication
    """
    return await library_service.recently_played(current_user.id, limit=limit)

@router.get("/{song_id}", response_model=SongResponse)
async def get_song(
    song_id: int,
    current_user: User = Depends(require_current_user),
    song_service: SongService = Depends(get_song_service)
):
    """
    Get a single song
    Requires authentication
    """
    song = await song_service.get_song(song_id)
    return SongResponse.model_validate(song)

@router.delete("/{song_id}")
async def delete_song(
    song_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_current_user),
    song_service: SongService = Depends(get_song_service),
    media: MediaStorage = Depends(get_media_storage)
):
    """
    Delete a song you uploaded; it is also removed from playlists and likes
    Requires authentication and ownership
    """
    assets = await song_service.delete_song(song_id, current_user.id)
    for public_id, resource_type in assets:
        background_tasks.add_task(discard_asset, media, public_id, resource_type)
    return {"message": "Song deleted successfully"}

@router.post("/{song_id}/like", status_code=status.HTTP_201_CREATED)
async def like_song(
    song_id: int,
    current_user: User = Depends(require_current_user),
    song_service: SongService = Depends(get_song_service)
):
    """
    Like a song
    Requires authentication
    """
    await song_service.like_song(song_id, current_user.id)
    return {"message": "Song liked", "liked": True}

@router.delete("/{song_id}/like")
async def unlike_song(
    song_id: int,
    current_user: User = Depends(require_current_user),
    song_service: SongService = Depends(get_song_service)
):
    """
    Remove a song from liked songs
    Requires authentication
    """
    await song_service.unlike_song(song_id, current_user.id)
    return {"message": "Song unliked", "liked": False}

@router.post("/{song_id}/play", response_model=PlayResponse)
async def record_play(
    song_id: int,
    current_user: User = Depends(require_current_user),
    song_service: SongService = Depends(get_song_service)
):
    """
    Record a play event for listening history
    Requires authentication
    """
    plays, played_at = await song_service.record_play(song_id, current_user.id)
    return PlayResponse(song_id=song_id, plays=plays, played_at=played_at)
