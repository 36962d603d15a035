# ============================================================================
# FILE: cloudly/services/user_service.py
# ============================================================================
from typing import Optional, Tuple
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from cloudly.config import settings
from cloudly.core.exceptions import NotFoundError, ValidationFailedError
from cloudly.core.media_storage import MediaStorage, avatar_options, discard_asset
from cloudly.core.security import get_password_hash, verify_password
from cloudly.db.models import User
from cloudly.db.session import Database
from cloudly.schemas.user import UserCreate
import logging

logger = logging.getLogger(__name__)

class UserService:
    """Service layer for user operations"""

    def __init__(self, database: Database, media: Optional[MediaStorage] = None):
        self.database = database
        self.media = media

    async def create_user(self, user_data: UserCreate) -> User:
        """Create a new user account"""
        if await self.get_user_by_email(user_data.email):
            raise ValidationFailedError("Email already registered")

        try:
            async with self.database.session_scope() as session:
                user = User(
                    name=user_data.name,
                    email=user_data.email,
                    hashed_password=get_password_hash(user_data.password),
                )
                session.add(user)
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            raise ValidationFailedError("Email already registered")
        logger.info(f"User created: {user.id} <{user.email}>")
        return user

    async def get_user(self, user_id: int) -> Optional[User]:
        async with self.database.session_scope() as session:
            return await session.get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email"""
        async with self.database.session_scope() as session:
            result = await session.execute(select(User).where(User.email == email.lower()))
            return result.scalar_one_or_none()

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """Authenticate user with email and password"""
        user = await self.get_user_by_email(email)
        if not user:
            return None
        if not verify_password(password, user.hashed_password):
            return None
        return user

    async def update_profile(self, user_id: int, name: Optional[str] = None,
                             avatar: Optional[bytes] = None,
                             avatar_filename: Optional[str] = None) -> Tuple[User, Optional[str]]:
        """
        Update display name and/or avatar.

        The new avatar is stored before the row changes. Returns the user and
        the replaced avatar id, which the caller discards off the request path.
        """
        new_asset = None
        if avatar is not None:
            if self.media is None:
                raise RuntimeError("UserService was built without media storage")
            new_asset = await self.media.store(avatar, avatar_options(settings.MEDIA_FOLDER), avatar_filename)

        try:
            async with self.database.session_scope() as session:
                user = await session.get(User, user_id)
                if user is None:
                    raise NotFoundError("User not found")
                old_public_id = None
                if name:
                    user.name = name
                if new_asset is not None:
                    old_public_id = user.avatar_public_id
                    user.avatar_url = new_asset.url
                    user.avatar_public_id = new_asset.public_id
        except Exception:
            if new_asset is not None:
                await discard_asset(self.media, new_asset.public_id)
            raise

        logger.info(f"Profile updated for user {user_id}")
        return user, old_public_id
