# ============================================================================
# FILE: cloudly/db/models/activity.py
# ============================================================================
from sqlalchemy import Column, Integer, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from cloudly.db.base import Base

class LikedSong(Base):
    """A user's like of a song; at most one per (user, song)"""
    __tablename__ = "liked_songs"
    __table_args__ = (
        UniqueConstraint("user_id", "song_id", name="uq_liked_songs_user_song"),
        Index("ix_liked_songs_user_created_at", "user_id", "created_at"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    song_id = Column(Integer, ForeignKey("songs.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    
    song = relationship("Song", lazy="raise")

class ListeningHistory(Base):
    """One row per play event; repeated plays produce repeated rows"""
    __tablename__ = "listening_history"
    __table_args__ = (
        Index("ix_listening_history_user_played_at", "user_id", "played_at"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    song_id = Column(Integer, ForeignKey("songs.id", ondelete="CASCADE"), nullable=False)
    played_at = Column(DateTime, default=datetime.utcnow, nullable=False)
