"""
User record: the single owner of all journal data on this device.
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from ..database import Base


class UserRecord(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    bio = Column(Text, nullable=True)
    email = Column(String(255), nullable=True)
    profile_photo_filename = Column(String(255), nullable=True)
    preferences = Column(JSON, nullable=True)
    is_premium = Column(Boolean, default=False, nullable=False)
    premium_expires_at = Column(DateTime, nullable=True)
    total_posts = Column(Integer, default=0, nullable=False)
    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    # Relationships
    personas = relationship(
        "PersonaRecord",
        back_populates="user",
        order_by="PersonaRecord.created_at",
        lazy="selectin",
        passive_deletes=True,
    )
