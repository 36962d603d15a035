# ============================================================================
# FILE: cloudly/api/v1/endpoints/playlist.py
# ============================================================================
from fastapi import APIRouter, BackgroundTasks, Depends, File, UploadFile, status
from typing import List
from cloudly.api.dependencies import get_media_storage, get_playlist_service, require_current_user
from cloudly.api.uploads import IMAGE_MIME_TYPES, read_upload
from cloudly.config import settings
from cloudly.core.media_storage import MediaStorage, discard_asset
from cloudly.schemas.playlist import (
    PlaylistCreate,
    PlaylistDetail,
    PlaylistReorder,
    PlaylistResponse,
    PlaylistSongAdd,
    PlaylistUpdate,
)
from cloudly.services.playlist_service import PlaylistService
from cloudly.db.models.user import User
import logging

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("", response_model=List[PlaylistResponse])
async def get_my_playlists(
    current_user: User = Depends(require_current_user),
    playlist_service: PlaylistService = Depends(get_playlist_service)
):
    """
    Get all playlists for the current user
    Requires authentication
    """
    playlists = await playlist_service.get_user_playlists(current_user.id)
    return [PlaylistResponse.model_validate(playlist) for playlist in playlists]

@router.post("", response_model=PlaylistDetail, status_code=status.HTTP_201_CREATED)
async def create_playlist(
    playlist_data: PlaylistCreate,
    current_user: User = Depends(require_current_user),
    playlist_service: PlaylistService = Depends(get_playlist_service)
):
    """
    Create a new playlist
    Requires authentication
    """
    playlist = await playlist_service.create_playlist(current_user.id, playlist_data)
    return PlaylistDetail.model_validate(playlist)

@router.get("/{playlist_id}", response_model=PlaylistDetail)
async def get_playlist(
    playlist_id: int,
    current_user: User = Depends(require_current_user),
    playlist_service: PlaylistService = Depends(get_playlist_service)
):
    """
    Get a playlist with its songs in order
    Private playlists are only visible to their owner
    """
    playlist = await playlist_service.get_playlist(playlist_id, current_user.id)
    return PlaylistDetail.model_validate(playlist)

@router.put("/{playlist_id}", response_model=PlaylistDetail)
async def update_playlist(
    playlist_id: int,
    update_data: PlaylistUpdate,
    current_user: User = Depends(require_current_user),
    playlist_service: PlaylistService = Depends(get_playlist_service)
):
    """
    Update playlist details (name, description, visibility)
    Requires authentication and ownership
    """
    playlist = await playlist_service.update_playlist(playlist_id, current_user.id, update_data)
    return PlaylistDetail.model_validate(playlist)

@router.delete("/{playlist_id}")
async def delete_playlist(
    playlist_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_current_user),
    playlist_service: PlaylistService = Depends(get_playlist_service),
    media: MediaStorage = Depends(get_media_storage)
):
    """
    Delete a playlist
    Requires authentication and ownership
    """
    cover_public_id = await playlist_service.delete_playlist(playlist_id, current_user.id)
    if cover_public_id:
        background_tasks.add_task(discard_asset, media, cover_public_id)
    return {"message": "Playlist deleted successfully"}

@router.put("/{playlist_id}/cover", response_model=PlaylistDetail)
async def update_playlist_cover(
    playlist_id: int,
    background_tasks: BackgroundTasks,
    cover: UploadFile = File(...),
    current_user: User = Depends(require_current_user),
    playlist_service: PlaylistService = Depends(get_playlist_service),
    media: MediaStorage = Depends(get_media_storage)
):
    """
    Replace the playlist cover image
    Requires authentication and ownership
    """
    data = await read_upload(cover, IMAGE_MIME_TYPES, settings.MAX_IMAGE_SIZE, "image")
    playlist, old_cover_id = await playlist_service.set_cover(
        playlist_id, current_user.id, data, cover.filename
    )
    if old_cover_id:
        background_tasks.add_task(discard_asset, media, old_cover_id)
    return PlaylistDetail.model_validate(playlist)

@router.post("/{playlist_id}/songs", response_model=PlaylistDetail)
async def add_song_to_playlist(
    playlist_id: int,
    song_data: PlaylistSongAdd,
    current_user: User = Depends(require_current_user),
    playlist_service: PlaylistService = Depends(get_playlist_service)
):
    """
    Append a song to a playlist
    Requires authentication and ownership
    """
    playlist = await playlist_service.add_song(playlist_id, current_user.id, song_data.song_id)
    return PlaylistDetail.model_validate(playlist)

@router.delete("/{playlist_id}/songs/{song_id}", response_model=PlaylistDetail)
async def remove_song_from_playlist(
    playlist_id: int,
    song_id: int,
    current_user: User = Depends(require_current_user),
    playlist_service: PlaylistService = Depends(get_playlist_service)
):
    """
    Remove a song from a playlist; later songs move up one position
    Requires authentication and ownership
    """
    playlist = await playlist_service.remove_song(playlist_id, current_user.id, song_id)
    return PlaylistDetail.model_validate(playlist)

@router.put("/{playlist_id}/reorder", response_model=PlaylistDetail)
async def reorder_playlist_songs(
    playlist_id: int,
    reorder: PlaylistReorder,
    current_user: User = Depends(require_current_user),
    playlist_service: PlaylistService = Depends(get_playlist_service)
):
    """
    Set a new song order; the list must contain every song in the playlist once
    Requires authentication and ownership
    """
    playlist = await playlist_service.reorder_songs(
        playlist_id, current_user.id, reorder.song_ids, expected_version=reorder.version
    )
    return PlaylistDetail.model_validate(playlist)
