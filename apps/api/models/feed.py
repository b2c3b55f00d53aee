"""Feed model for followed social profiles."""

from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from database import Base


class Feed(Base):
    """A public profile on one platform that a user follows."""

    __tablename__ = "feeds"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String, nullable=False, index=True)  # instagram, twitter, tiktok, threads, bluesky
    username = Column(String, nullable=False)
    profile_url = Column(String, nullable=False)
    avatar_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Relationships
    user = relationship("User", back_populates="feeds")
    posts = relationship("Post", back_populates="feed", cascade="all, delete-orphan")
