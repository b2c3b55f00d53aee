"""Post model for normalized mirrored posts."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class Post(Base):
    """Canonical post row; (feed_id, platform_post_id) is the dedup key."""

    __tablename__ = "posts"
    __table_args__ = (
        UniqueConstraint("feed_id", "platform_post_id", name="uq_posts_feed_platform_post"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    feed_id = Column(String, ForeignKey("feeds.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String, nullable=False)
    platform_post_id = Column(String, nullable=False)
    username = Column(String, nullable=False, default="Unknown")
    avatar_url = Column(String, nullable=True)
    media_type = Column(String, nullable=False, default="text")  # text, image, video
    media_url = Column(String, nullable=True)
    description = Column(Text, nullable=False, default="")
    likes = Column(Integer, nullable=False, default=0)
    comments = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    feed = relationship("Feed", back_populates="posts")
