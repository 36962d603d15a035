# ============================================================================
# FILE: cloudly/api/dependencies.py
# ============================================================================
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from cloudly.core.media_storage import MediaStorage
from cloudly.core.security import decode_access_token
from cloudly.db.models.user import User
from cloudly.db.session import Database, get_database, get_db
from cloudly.services.library_service import LibraryService
from cloudly.services.playlist_service import PlaylistService
from cloudly.services.song_service import SongService
from cloudly.services.user_service import UserService
from typing import Optional

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

def get_media_storage(request: Request) -> MediaStorage:
    return request.app.state.media

async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """
    Get current authenticated user from JWT token
    Returns None if no token or invalid token (allows anonymous access)
    """
    if not token:
        return None
    
    try:
        payload = decode_access_token(token)
        subject = payload.get("sub")
        if subject is None:
            return None
        user_id = int(subject)
    except (HTTPException, ValueError):
        return None
    
    return await db.get(User, user_id)

def require_current_user(
    current_user: Optional[User] = Depends(get_current_user)
) -> User:
    """
    Require authenticated user (raises 401 if not authenticated)
    Use this dependency for protected endpoints
    """
    if current_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current_user

def get_user_service(
    database: Database = Depends(get_database),
    media: MediaStorage = Depends(get_media_storage)
) -> UserService:
    return UserService(database, media)

def get_song_service(
    database: Database = Depends(get_database),
    media: MediaStorage = Depends(get_media_storage)
) -> SongService:
    return SongService(database, media)

def get_playlist_service(
    database: Database = Depends(get_database),
    media: MediaStorage = Depends(get_media_storage)
) -> PlaylistService:
    return PlaylistService(database, media)

def get_library_service(
    request: Request,
    database: Database = Depends(get_database)
) -> LibraryService:
    app_settings = request.app.state.settings
    return LibraryService(
        database,
        timeout=app_settings.QUERY_TIMEOUT_SECONDS,
        section_limit=app_settings.HOME_SECTION_LIMIT,
        library_song_limit=app_settings.LIBRARY_SONG_LIMIT,
    )
