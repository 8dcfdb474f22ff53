"""
Memory presentation record: which post was surfaced, when, and what the user did with it.
"""
from sqlalchemy import Column, String, DateTime, Text, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from ..database import Base


class MemoryRecord(Base):
    __tablename__ = "memories"

    id = Column(String(36), primary_key=True)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    memory_type = Column(String(40), nullable=False, index=True)  # onThisDay_<n>, thisWeekLastYear, randomThrowback
    presented_at = Column(DateTime, default=datetime.now, nullable=False, index=True)
    was_viewed = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, nullable=True)

    # Relationships
    post = relationship("PostRecord", lazy="selectin")
