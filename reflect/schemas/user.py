"""The device owner, their preferences and tier limits."""
from datetime import datetime, time
from enum import Enum
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ..dates import LocalDatetime, days_between
from .persona import Persona
from .post import Post

FREE_STORAGE_LIMIT = 2_147_483_648  # 2 GB
FREE_POST_LIMIT = 500
FREE_PERSONA_LIMIT = 1
PREMIUM_PERSONA_LIMIT = 5


def can_create_persona(current_count: int, is_premium: bool) -> bool:
    """Tier check over an already-fetched persona count. Enforces nothing."""
    limit = PREMIUM_PERSONA_LIMIT if is_premium else FREE_PERSONA_LIMIT
    return current_count < limit


class LockTimeout(str, Enum):
    IMMEDIATE = "Immediate"
    ONE_MINUTE = "1 Minute"
    FIVE_MINUTES = "5 Minutes"
    FIFTEEN_MINUTES = "15 Minutes"
    ONE_HOUR = "1 Hour"

    @property
    def seconds(self) -> Optional[int]:
        return {
            LockTimeout.IMMEDIATE: None,
            LockTimeout.ONE_MINUTE: 60,
            LockTimeout.FIVE_MINUTES: 300,
            LockTimeout.FIFTEEN_MINUTES: 900,
            LockTimeout.ONE_HOUR: 3600,
        }[self]


class FeedViewType(str, Enum):
    LIST = "list"
    GRID = "grid"
    CALENDAR = "calendar"


class UserPreferences(BaseModel):
    # Notifications
    notifications_enabled: bool = True
    memory_notification_time: Optional[time] = None
    streak_reminder_enabled: bool = True

    # Security
    app_lock_enabled: bool = False
    use_biometrics: bool = True
    require_auth_on_launch: bool = True
    lock_timeout: LockTimeout = LockTimeout.IMMEDIATE

    # Privacy
    allow_analytics: bool = False
    allow_crash_reporting: bool = False
    cloud_sync_enabled: bool = False

    # Display
    default_feed_view: FeedViewType = FeedViewType.LIST
    show_memories_lane: bool = True
    default_persona_id: Optional[UUID] = None


class User(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str = Field(min_length=1, max_length=100)
    bio: Optional[str] = None
    email: Optional[str] = None
    profile_photo_filename: Optional[str] = None
    created_at: LocalDatetime = Field(default_factory=datetime.now)
    updated_at: Optional[LocalDatetime] = None

    persona_ids: List[UUID] = Field(default_factory=list)
    preferences: UserPreferences = Field(default_factory=UserPreferences)

    is_premium: bool = False
    premium_expires_at: Optional[LocalDatetime] = None

    # Denormalized counters, kept in sync by explicit repository calls
    total_posts: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)

    class Config:
        validate_assignment = True

    def has_active_premium(self, now: Optional[datetime] = None) -> bool:
        if not self.is_premium:
            return False
        if self.premium_expires_at is not None:
            return (now or datetime.now()) < self.premium_expires_at
        return True

    def days_until_premium_expires(self, now: Optional[datetime] = None) -> Optional[int]:
        if self.premium_expires_at is None:
            return None
        return days_between(now or datetime.now(), self.premium_expires_at)

    def member_for_days(self, now: Optional[datetime] = None) -> int:
        return days_between(self.created_at, now or datetime.now())

    def member_duration_formatted(self, now: Optional[datetime] = None) -> str:
        days = self.member_for_days(now)
        if days < 7:
            return _plural(days, "day")
        if days < 30:
            return _plural(days // 7, "week")
        if days < 365:
            return _plural(days // 30, "month")
        return _plural(days // 365, "year")

    def has_reached_post_limit(self, now: Optional[datetime] = None) -> bool:
        return not self.has_active_premium(now) and self.total_posts >= FREE_POST_LIMIT

    def can_create_persona(self, current_count: int, now: Optional[datetime] = None) -> bool:
        return can_create_persona(current_count, self.has_active_premium(now))


class UserStatistics(BaseModel):
    total_posts: int
    current_streak: int
    longest_streak: int


class AccountExport(BaseModel):
    """Everything the device holds for one user."""

    user: User
    personas: List[Persona] = Field(default_factory=list)
    posts: List[Post] = Field(default_factory=list)
    exported_at: LocalDatetime = Field(default_factory=datetime.now)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"
