# ============================================================================
# FILE: cloudly/api/v1/endpoints/auth.py
# ============================================================================
from fastapi import APIRouter, Depends, HTTPException, status
from datetime import timedelta
from cloudly.api.dependencies import get_user_service, require_current_user
from cloudly.schemas.user import AuthResponse, UserCreate, UserLogin, UserResponse
from cloudly.services.user_service import UserService
from cloudly.core.security import create_access_token
from cloudly.config import settings
from cloudly.db.models.user import User
import logging

logger = logging.getLogger(__name__)
router = APIRouter()

def _issue_token(user: User) -> AuthResponse:
    access_token = create_access_token(
        data={"sub": str(user.id)},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return AuthResponse(access_token=access_token, user=UserResponse.model_validate(user))

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    user_service: UserService = Depends(get_user_service)
):
    """
    Register a new user account
    Returns a bearer token so the client is signed in straight away
    """
    user = await user_service.create_user(user_data)
    return _issue_token(user)

@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: UserLogin,
    user_service: UserService = Depends(get_user_service)
):
    """
    Login with email and password
    Returns JWT access token
    """
    user = await user_service.authenticate_user(credentials.email, credentials.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    logger.info(f"User logged in: {user.id}")
    return _issue_token(user)

@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: User = Depends(require_current_user)
):
    """
    Get current user information
    Requires authentication
    """
    return current_user
