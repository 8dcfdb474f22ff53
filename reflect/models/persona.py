"""
Persona record: a named context bucket that owns posts.
"""
from sqlalchemy import Column, String, DateTime, Text, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from ..database import Base


class PersonaRecord(Base):
    __tablename__ = "personas"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_personas_user_name"),
    )

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(30), nullable=False)
    color = Column(String(20), nullable=False, default="blue")
    icon = Column(String(50), nullable=False, default="person.fill")
    description = Column(Text, nullable=True)
    is_default = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.now, nullable=False)

    # Relationships
    user = relationship("UserRecord", back_populates="personas")
    posts = relationship("PostRecord", back_populates="persona", passive_deletes=True)
