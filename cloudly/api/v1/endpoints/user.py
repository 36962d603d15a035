# ============================================================================
# FILE: cloudly/api/v1/endpoints/user.py
# ============================================================================
from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from cloudly.api.dependencies import (
    get_library_service,
    get_media_storage,
    get_user_service,
    require_current_user,
)
from cloudly.api.uploads import IMAGE_MIME_TYPES, read_upload
from cloudly.config import settings
from cloudly.core.exceptions import OperationFailedError
from cloudly.core.media_storage import MediaStorage, discard_asset
from cloudly.db.models.user import User
from cloudly.schemas.feed import HomeFeed, LibraryResponse
from cloudly.schemas.user import ProfileResponse, UserResponse
from cloudly.services.library_service import LibraryService
from cloudly.services.user_service import UserService
import logging

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    current_user: User = Depends(require_current_user),
    library_service: LibraryService = Depends(get_library_service)
):
    """
    Get the current user's profile with upload, playlist and like counts
    Requires authentication
    """
    try:
        stats = await library_service.get_profile_stats(current_user.id)
    except (SQLAlchemyError, OperationFailedError) as e:
        logger.error(f"Get profile error for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to get profile")
    return ProfileResponse(user=UserResponse.model_validate(current_user), stats=stats)

@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    background_tasks: BackgroundTasks,
    name: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_current_user),
    user_service: UserService = Depends(get_user_service),
    media: MediaStorage = Depends(get_media_storage)
):
    """
    Update display name and/or avatar (multipart form)
    The previous avatar is deleted in the background
    """
    if name is not None:
        name = name.strip()
        if not 1 <= len(name) <= 50:
            raise HTTPException(status_code=400, detail="Name must be 1-50 characters")

    avatar_bytes = None
    if avatar is not None and avatar.filename:
        avatar_bytes = await read_upload(avatar, IMAGE_MIME_TYPES, settings.MAX_IMAGE_SIZE, "image")

    try:
        user, old_avatar_id = await user_service.update_profile(
            current_user.id, name=name, avatar=avatar_bytes,
            avatar_filename=avatar.filename if avatar is not None else None,
        )
    except SQLAlchemyError as e:
        logger.error(f"Update profile error for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update profile")

    if old_avatar_id:
        background_tasks.add_task(discard_asset, media, old_avatar_id)
    return ProfileResponse(user=UserResponse.model_validate(user))

@router.get("/home", response_model=HomeFeed)
async def get_home(
    current_user: User = Depends(require_current_user),
    library_service: LibraryService = Depends(get_library_service)
):
    """
    Dashboard data: recently played, playlists, liked songs and new uploads
    Requires authentication
    """
    try:
        return await library_service.get_home_feed(current_user.id)
    except (SQLAlchemyError, OperationFailedError) as e:
        logger.error(f"Get home data error for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to get home data")

@router.get("/library", response_model=LibraryResponse)
async def get_library(
    current_user: User = Depends(require_current_user),
    library_service: LibraryService = Depends(get_library_service)
):
    """
    Uploaded songs, playlists and liked-song count for the current user
    Requires authentication
    """
    try:
        return await library_service.get_library(current_user.id)
    except (SQLAlchemyError, OperationFailedError) as e:
        logger.error(f"Get library error for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to get library")
