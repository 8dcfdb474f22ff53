from .post import PostRepository
from .user import UserRepository
from .persona import PersonaRepository
from .media import MediaItemRepository
from .memory import MemoryRepository
from .settings import AppSettingsRepository

__all__ = [
    "PostRepository",
    "UserRepository",
    "PersonaRepository",
    "MediaItemRepository",
    "MemoryRepository",
    "AppSettingsRepository",
]
