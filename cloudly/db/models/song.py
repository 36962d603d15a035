# ============================================================================
# FILE: cloudly/db/models/song.py
# ============================================================================
from sqlalchemy import CheckConstraint, Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from cloudly.db.base import Base

DEFAULT_ALBUM = "Unknown Album"

class Song(Base):
    """Uploaded song; audio and cover live in media storage"""
    __tablename__ = "songs"
    __table_args__ = (
        Index("ix_songs_uploaded_by_created_at", "uploaded_by", "created_at"),
        Index("ix_songs_created_at", "created_at"),
        CheckConstraint("plays >= 0", name="ck_songs_plays_non_negative"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    artist = Column(String(100), nullable=False)
    album = Column(String(100), nullable=False, default=DEFAULT_ALBUM)
    audio_url = Column(String, nullable=False)
    audio_public_id = Column(String, nullable=False)
    cover_url = Column(String, nullable=True)
    cover_public_id = Column(String, nullable=True)
    duration = Column(Integer, nullable=False, default=0)  # seconds
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    plays = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    
    # Only populated when a query asks for it with selectinload(Song.uploader)
    uploader = relationship("User", lazy="raise")
