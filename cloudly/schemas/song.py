# ============================================================================
# FILE: cloudly/schemas/song.py
# ============================================================================
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

class SongCreate(BaseModel):
    """Metadata sent alongside the uploaded audio file"""
    title: str = Field(..., min_length=1, max_length=100)
    artist: str = Field(..., min_length=1, max_length=100)
    album: Optional[str] = Field(None, max_length=100)
    duration: int = Field(0, ge=0)

    @field_validator("title", "artist", "album", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

class UploaderInfo(BaseModel):
    id: int
    name: str
    
    class Config:
        from_attributes = True

class SongResponse(BaseModel):
    """Schema for song information"""
    id: int
    title: str
    artist: str
    album: str
    audio_url: str
    cover_url: Optional[str] = None
    duration: int  # seconds
    plays: int
    uploaded_by: int
    uploader: Optional[UploaderInfo] = None
    created_at: datetime
    
    class Config:
        from_attributes = True

class RecentlyPlayedSong(SongResponse):
    last_played: datetime

class LikedSongResponse(SongResponse):
    liked: bool = True

class SongListResponse(BaseModel):
    songs: List[SongResponse]
    total: int
    page: int
    pages: int

class PlayResponse(BaseModel):
    song_id: int
    plays: int
    played_at: datetime
