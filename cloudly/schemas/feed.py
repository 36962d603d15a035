# ============================================================================
# FILE: cloudly/schemas/feed.py
# ============================================================================
from pydantic import BaseModel
from typing import List
from cloudly.schemas.playlist import PlaylistResponse, PlaylistSummary
from cloudly.schemas.song import LikedSongResponse, RecentlyPlayedSong, SongResponse

class HomeFeed(BaseModel):
    """Dashboard sections, each already ordered for display"""
    recently_played: List[RecentlyPlayedSong]
    playlists: List[PlaylistSummary]
    liked_songs: List[LikedSongResponse]
    new_uploads: List[SongResponse]

class LibraryResponse(BaseModel):
    uploaded_songs: List[SongResponse]
    playlists: List[PlaylistResponse]
    liked_songs_count: int
