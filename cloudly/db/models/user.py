# ============================================================================
# FILE: cloudly/db/models/user.py
# ============================================================================
from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime
from cloudly.db.base import Base

class User(Base):
    """User model for authentication and ownership of songs and playlists"""
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    avatar_url = Column(String, nullable=True)
    avatar_public_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
