"""
Key/value application state (onboarding flag and similar device-level settings).
"""
from sqlalchemy import Column, String, DateTime, JSON
from datetime import datetime
from ..database import Base


class AppSettingRecord(Base):
    __tablename__ = "app_settings"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
