"""Media items attached to posts."""
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ..dates import LocalDatetime

MAX_FILE_SIZE_FREE = 10_485_760  # 10 MB
MAX_FILE_SIZE_PREMIUM = 104_857_600  # 100 MB
MAX_VIDEO_DURATION_FREE = 60.0  # seconds
MAX_VIDEO_DURATION_PREMIUM = 600.0


class MediaType(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class MediaItem(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    type: MediaType
    filename: str = Field(min_length=1)
    thumbnail_filename: Optional[str] = None
    created_at: LocalDatetime = Field(default_factory=datetime.now)
    file_size: int = Field(ge=0)
    post_id: UUID
    width: Optional[int] = Field(default=None, ge=0)
    height: Optional[int] = Field(default=None, ge=0)
    duration: Optional[float] = Field(default=None, ge=0)

    class Config:
        validate_assignment = True

    @property
    def is_photo(self) -> bool:
        return self.type == MediaType.PHOTO

    @property
    def is_video(self) -> bool:
        return self.type == MediaType.VIDEO

    @property
    def aspect_ratio(self) -> Optional[float]:
        if self.width is None or not self.height:
            return None
        return self.width / self.height

    @property
    def is_landscape(self) -> bool:
        ratio = self.aspect_ratio
        return ratio is not None and ratio > 1.0

    @property
    def is_portrait(self) -> bool:
        ratio = self.aspect_ratio
        return ratio is not None and ratio < 1.0

    @property
    def is_square(self) -> bool:
        ratio = self.aspect_ratio
        return ratio is not None and abs(ratio - 1.0) < 0.01

    @property
    def duration_formatted(self) -> Optional[str]:
        if self.duration is None:
            return None
        minutes, seconds = divmod(int(self.duration), 60)
        return f"{minutes}:{seconds:02d}"

    # Tier limits

    @property
    def is_within_free_tier_size(self) -> bool:
        return self.file_size <= MAX_FILE_SIZE_FREE

    @property
    def is_within_premium_tier_size(self) -> bool:
        return self.file_size <= MAX_FILE_SIZE_PREMIUM

    @property
    def is_within_free_tier_duration(self) -> bool:
        return self.duration is None or self.duration <= MAX_VIDEO_DURATION_FREE

    @property
    def is_within_premium_tier_duration(self) -> bool:
        return self.duration is None or self.duration <= MAX_VIDEO_DURATION_PREMIUM

    def is_valid(self, is_premium: bool) -> bool:
        """Size and duration fit the ceilings of the given tier."""
        size_limit = MAX_FILE_SIZE_PREMIUM if is_premium else MAX_FILE_SIZE_FREE
        duration_limit = MAX_VIDEO_DURATION_PREMIUM if is_premium else MAX_VIDEO_DURATION_FREE
        if self.file_size > size_limit:
            return False
        return self.duration is None or self.duration <= duration_limit

    @staticmethod
    def generate_filename(media_type: MediaType) -> str:
        ext = "jpg" if media_type == MediaType.PHOTO else "mp4"
        return f"{str(uuid4()).upper()}.{ext}"

    @staticmethod
    def generate_thumbnail_filename(filename: str) -> str:
        name, dot, ext = filename.rpartition(".")
        if dot and name:
            return f"{name}_thumb.{ext}"
        return f"{filename}_thumb"
