# ============================================================================
# FILE: cloudly/db/models/playlist.py
# ============================================================================
from sqlalchemy import Boolean, Column, Integer, String, DateTime, ForeignKey, Index, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from cloudly.db.base import Base

class Playlist(Base):
    """Playlist model for user-created playlists"""
    __tablename__ = "playlists"
    __table_args__ = (
        Index("ix_playlists_created_by_updated_at", "created_by", "updated_at"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    cover_url = Column(String, nullable=True)
    cover_public_id = Column(String, nullable=True)
    is_public = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    # Relationships
    entries = relationship(
        "PlaylistSong",
        back_populates="playlist",
        cascade="all, delete-orphan",
        order_by="PlaylistSong.position",
        lazy="selectin",
    )
    
    # UPDATE ... WHERE version = :expected, raising StaleDataError on lost updates
    __mapper_args__ = {"version_id_col": version}
    
    @property
    def song_count(self) -> int:
        return len(self.entries)
    
    @property
    def song_ids(self):
        return [entry.song_id for entry in self.entries]

class PlaylistSong(Base):
    """Positioned song entry inside a playlist"""
    __tablename__ = "playlist_songs"
    __table_args__ = (
        Index("ix_playlist_songs_playlist_position", "playlist_id", "position"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    playlist_id = Column(Integer, ForeignKey("playlists.id", ondelete="CASCADE"), nullable=False)
    song_id = Column(Integer, ForeignKey("songs.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    # Relationships
    playlist = relationship("Playlist", back_populates="entries")
    song = relationship("Song", lazy="raise")
