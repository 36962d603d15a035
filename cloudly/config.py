# ============================================================================
# FILE: cloudly/config.py
# ============================================================================
from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    """Application configuration using Pydantic BaseSettings"""
    
    # App settings
    APP_NAME: str = "Cloudly"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # Database (any async SQLAlchemy URL)
    DATABASE_URL: str = "sqlite+aiosqlite:///./cloudly.db"
    DATABASE_ECHO: bool = False
    
    # Security
    SECRET_KEY: str = "your-secret-key-change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    
    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]
    
    # Media storage: "local" or "cloudinary"
    MEDIA_BACKEND: str = "local"
    MEDIA_ROOT: str = "./media"
    MEDIA_BASE_URL: str = "/media"
    MEDIA_FOLDER: str = "cloudly"
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    
    # Upload limits (bytes)
    MAX_AUDIO_SIZE: int = 50 * 1024 * 1024
    MAX_IMAGE_SIZE: int = 5 * 1024 * 1024
    
    # Aggregation queries
    QUERY_TIMEOUT_SECONDS: float = 10.0
    HOME_SECTION_LIMIT: int = 10
    LIBRARY_SONG_LIMIT: int = 50
    
    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
