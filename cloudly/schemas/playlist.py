# ============================================================================
# FILE: cloudly/schemas/playlist.py
# ============================================================================
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from cloudly.schemas.song import SongResponse

class PlaylistCreate(BaseModel):
    """Schema for creating a playlist"""
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    is_public: bool = False

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

class PlaylistUpdate(BaseModel):
    """Schema for updating a playlist"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    is_public: Optional[bool] = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

class PlaylistSongAdd(BaseModel):
    """Schema for adding a song to playlist"""
    song_id: int

class PlaylistReorder(BaseModel):
    """Full new order of the playlist's songs, first to last"""
    song_ids: List[int]
    version: Optional[int] = None

class PlaylistSongResponse(BaseModel):
    """Schema for playlist song response"""
    position: int
    added_at: datetime
    song: SongResponse
    
    class Config:
        from_attributes = True

class PlaylistSummary(BaseModel):
    """Compact projection used on the home feed"""
    id: int
    name: str
    cover_url: Optional[str] = None
    song_count: int
    
    class Config:
        from_attributes = True

class PlaylistResponse(BaseModel):
    """Schema for playlist response"""
    id: int
    name: str
    description: str = ""
    cover_url: Optional[str] = None
    is_public: bool
    created_by: int
    song_count: int
    version: int
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True

class PlaylistDetail(PlaylistResponse):
    songs: List[PlaylistSongResponse] = Field(default_factory=list, validation_alias="entries")
