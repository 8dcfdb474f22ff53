from .user import UserRecord
from .persona import PersonaRecord
from .post import PostRecord
from .media import MediaItemRecord
from .memory import MemoryRecord
from .settings import AppSettingRecord

__all__ = [
    "UserRecord",
    "PersonaRecord",
    "PostRecord",
    "MediaItemRecord",
    "MemoryRecord",
    "AppSettingRecord",
]
