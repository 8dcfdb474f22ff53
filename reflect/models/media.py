"""
Media item record for photos and videos attached to a post.
"""
from sqlalchemy import Column, Integer, Float, String, DateTime, BigInteger, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from ..database import Base


class MediaItemRecord(Base):
    __tablename__ = "media_items"

    id = Column(String(36), primary_key=True)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, default=0, nullable=False)
    media_type = Column(String(20), default="photo", nullable=False, index=True)  # photo, video
    filename = Column(String(255), nullable=False, index=True)
    thumbnail_filename = Column(String(255), nullable=True)
    file_size = Column(BigInteger, default=0, nullable=False)  # in bytes
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    duration = Column(Float, nullable=True)  # seconds, videos only
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)

    # Relationships
    post = relationship("PostRecord", back_populates="media_items")
