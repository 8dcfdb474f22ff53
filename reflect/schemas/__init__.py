from .media import MediaItem, MediaType
from .persona import Persona, PersonaColor, PersonaIcon, PersonaPreset
from .post import Post, PostType, PostSearchCriteria
from .user import (
    AccountExport,
    FeedViewType,
    LockTimeout,
    User,
    UserPreferences,
    UserStatistics,
    can_create_persona,
)
from .memory import Memory, MemoryType, OnThisDay, ThisWeekLastYear, RandomThrowback, is_within_free_limit

__all__ = [
    "MediaItem", "MediaType",
    "Persona", "PersonaColor", "PersonaIcon", "PersonaPreset",
    "Post", "PostType", "PostSearchCriteria",
    "AccountExport", "FeedViewType", "LockTimeout", "User", "UserPreferences", "UserStatistics",
    "can_create_persona",
    "Memory", "MemoryType", "OnThisDay", "ThisWeekLastYear", "RandomThrowback", "is_within_free_limit",
]
