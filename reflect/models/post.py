"""
Post record: a dated journal entry.
"""
from sqlalchemy import Column, Integer, Float, String, DateTime, Text, Boolean, JSON, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from ..database import Base


class PostRecord(Base):
    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_persona_created_at", "persona_id", "created_at"),
    )

    id = Column(String(36), primary_key=True)
    persona_id = Column(String(36), ForeignKey("personas.id", ondelete="CASCADE"), nullable=False, index=True)
    caption = Column(Text, nullable=False, default="")
    mood = Column(Integer, nullable=False, index=True)
    experience_rating = Column(Integer, nullable=True)
    location = Column(String(255), nullable=True)
    post_type = Column(String(20), nullable=False, default="photo", index=True)  # photo, video, text, voiceMemo, photoVideo
    activity_tags = Column(JSON, default=list)
    people_tags = Column(JSON, default=list)
    is_gratitude = Column(Boolean, default=False, nullable=False)
    is_rant = Column(Boolean, default=False, nullable=False)
    is_dream = Column(Boolean, default=False, nullable=False)
    is_future_you = Column(Boolean, default=False, nullable=False)
    scheduled_for = Column(DateTime, nullable=True)
    auto_delete_date = Column(DateTime, nullable=True, index=True)
    voice_memo_filename = Column(String(255), nullable=True)
    voice_memo_duration = Column(Float, nullable=True)
    voice_memo_transcription = Column(Text, nullable=True)
    memory_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False, index=True)
    updated_at = Column(DateTime, nullable=True)

    # Relationships
    persona = relationship("PersonaRecord", back_populates="posts")
    media_items = relationship(
        "MediaItemRecord",
        back_populates="post",
        order_by="MediaItemRecord.position",
        cascade="all, delete-orphan",
        lazy="selectin",
        passive_deletes=True,
    )
