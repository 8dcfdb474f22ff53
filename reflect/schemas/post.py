"""Posts: dated journal entries."""
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from ..dates import LocalDatetime
from .media import MediaItem

MOOD_MIN = 1
MOOD_MAX = 10


class PostType(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"
    TEXT = "text"
    VOICE_MEMO = "voiceMemo"
    PHOTO_VIDEO = "photoVideo"  # multiple media items


class Post(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    caption: str = ""
    mood: int = Field(ge=MOOD_MIN, le=MOOD_MAX)
    experience_rating: Optional[int] = Field(default=None, ge=MOOD_MIN, le=MOOD_MAX)
    created_at: LocalDatetime = Field(default_factory=datetime.now)
    updated_at: Optional[LocalDatetime] = None
    location: Optional[str] = None

    persona_id: UUID
    media_items: List[MediaItem] = Field(default_factory=list)

    activity_tags: List[str] = Field(default_factory=list)
    people_tags: List[str] = Field(default_factory=list)

    post_type: PostType = PostType.PHOTO

    is_gratitude: bool = False
    is_rant: bool = False
    is_dream: bool = False
    is_future_you: bool = False
    scheduled_for: Optional[LocalDatetime] = None
    auto_delete_date: Optional[LocalDatetime] = None

    voice_memo_filename: Optional[str] = None
    voice_memo_duration: Optional[float] = Field(default=None, ge=0)
    voice_memo_transcription: Optional[str] = None

    memory_notes: Optional[str] = None

    class Config:
        validate_assignment = True

    @field_validator("activity_tags", "people_tags")
    @classmethod
    def _dedupe_tags(cls, tags: List[str]) -> List[str]:
        seen = []
        for tag in tags:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @model_validator(mode="after")
    def _media_belongs_to_post(self) -> "Post":
        for item in self.media_items:
            if item.post_id != self.id:
                raise ValueError(f"Media item {item.id} belongs to post {item.post_id}, not {self.id}")
        return self

    @property
    def has_media(self) -> bool:
        return bool(self.media_items)

    @property
    def primary_media(self) -> Optional[MediaItem]:
        return self.media_items[0] if self.media_items else None

    @property
    def all_tags(self) -> List[str]:
        return self.activity_tags + [t for t in self.people_tags if t not in self.activity_tags]

    @property
    def is_special_post(self) -> bool:
        return self.is_gratitude or self.is_rant or self.is_dream or self.is_future_you

    @property
    def special_post_type_name(self) -> Optional[str]:
        if self.is_gratitude:
            return "Gratitude"
        if self.is_rant:
            return "Rant"
        if self.is_dream:
            return "Dream"
        if self.is_future_you:
            return "Future You"
        return None

    def should_auto_delete(self, now: Optional[datetime] = None) -> bool:
        if self.auto_delete_date is None:
            return False
        return (now or datetime.now()) >= self.auto_delete_date

    def is_visible(self, now: Optional[datetime] = None) -> bool:
        """Future-dated posts stay hidden until their scheduled time."""
        if self.scheduled_for is None:
            return True
        return (now or datetime.now()) >= self.scheduled_for


class PostSearchCriteria(BaseModel):
    """Multi-criteria search. Every supplied criterion must match."""

    query: Optional[str] = None
    persona_ids: Optional[List[UUID]] = None
    mood_range: Optional[Tuple[int, int]] = None
    date_range: Optional[Tuple[LocalDatetime, LocalDatetime]] = None
    tags: Optional[List[str]] = None
    has_media: Optional[bool] = None
