"""
Record <-> entity mapping.

Records are what the store persists; entities are what callers see. Anything
that cannot become a valid entity raises `MappingError` instead of being
patched up with defaults.
"""
from typing import Dict, List
from uuid import UUID

from pydantic import ValidationError

from .errors import MappingError
from .models import MediaItemRecord, MemoryRecord, PersonaRecord, PostRecord, UserRecord
from .schemas import (
    MediaItem,
    Memory,
    MemoryType,
    OnThisDay,
    Persona,
    Post,
    RandomThrowback,
    ThisWeekLastYear,
    User,
    UserPreferences,
)

ON_THIS_DAY_PREFIX = "onThisDay_"
THIS_WEEK_LAST_YEAR = "thisWeekLastYear"
RANDOM_THROWBACK = "randomThrowback"


def _require(record, entity: str, *fields: str) -> None:
    missing = [f for f in fields if getattr(record, f, None) is None]
    if missing:
        raise MappingError(
            f"Missing required field in {entity} record: {', '.join(missing)}",
            details={"entity": entity, "fields": missing, "id": getattr(record, "id", None)},
        )


def _build(entity: str, factory, **values):
    try:
        return factory(**values)
    except (ValidationError, ValueError) as e:
        raise MappingError(
            f"Invalid data in {entity} record: {e}",
            details={"entity": entity, "id": str(values.get("id"))},
        ) from e


# ============================================================
# MEDIA ITEMS
# ============================================================

def record_to_media(record: MediaItemRecord) -> MediaItem:
    _require(record, "MediaItem", "id", "post_id", "filename", "media_type", "created_at")
    return _build(
        "MediaItem",
        MediaItem,
        id=UUID(record.id),
        type=record.media_type,
        filename=record.filename,
        thumbnail_filename=record.thumbnail_filename,
        created_at=record.created_at,
        file_size=record.file_size or 0,
        post_id=UUID(record.post_id),
        width=record.width,
        height=record.height,
        duration=record.duration,
    )


def apply_media(record: MediaItemRecord, item: MediaItem) -> MediaItemRecord:
    record.id = str(item.id)
    record.post_id = str(item.post_id)
    record.media_type = item.type.value
    record.filename = item.filename
    record.thumbnail_filename = item.thumbnail_filename
    record.file_size = item.file_size
    record.width = item.width
    record.height = item.height
    record.duration = item.duration
    record.created_at = item.created_at
    return record


def media_to_record(item: MediaItem, position: int = 0) -> MediaItemRecord:
    record = apply_media(MediaItemRecord(), item)
    record.position = position
    return record


# ============================================================
# POSTS
# ============================================================

def record_to_post(record: PostRecord) -> Post:
    _require(record, "Post", "id", "persona_id", "caption", "mood", "created_at", "post_type")
    media_items = [record_to_media(m) for m in sorted(record.media_items, key=lambda m: m.position)]
    return _build(
        "Post",
        Post,
        id=UUID(record.id),
        caption=record.caption,
        mood=record.mood,
        experience_rating=record.experience_rating,
        created_at=record.created_at,
        updated_at=record.updated_at,
        location=record.location,
        persona_id=UUID(record.persona_id),
        media_items=media_items,
        activity_tags=list(record.activity_tags or []),
        people_tags=list(record.people_tags or []),
        post_type=record.post_type,
        is_gratitude=bool(record.is_gratitude),
        is_rant=bool(record.is_rant),
        is_dream=bool(record.is_dream),
        is_future_you=bool(record.is_future_you),
        scheduled_for=record.scheduled_for,
        auto_delete_date=record.auto_delete_date,
        voice_memo_filename=record.voice_memo_filename,
        voice_memo_duration=record.voice_memo_duration,
        voice_memo_transcription=record.voice_memo_transcription,
        memory_notes=record.memory_notes,
    )


def apply_post(record: PostRecord, post: Post) -> PostRecord:
    """Full-record replace, including the ordered media collection."""
    record.id = str(post.id)
    record.persona_id = str(post.persona_id)
    record.caption = post.caption
    record.mood = post.mood
    record.experience_rating = post.experience_rating
    record.created_at = post.created_at
    record.updated_at = post.updated_at
    record.location = post.location
    record.post_type = post.post_type.value
    record.activity_tags = list(post.activity_tags)
    record.people_tags = list(post.people_tags)
    record.is_gratitude = post.is_gratitude
    record.is_rant = post.is_rant
    record.is_dream = post.is_dream
    record.is_future_you = post.is_future_you
    record.scheduled_for = post.scheduled_for
    record.auto_delete_date = post.auto_delete_date
    record.voice_memo_filename = post.voice_memo_filename
    record.voice_memo_duration = post.voice_memo_duration
    record.voice_memo_transcription = post.voice_memo_transcription
    record.memory_notes = post.memory_notes
    _sync_media(record, post.media_items)
    return record


def _sync_media(record: PostRecord, items: List[MediaItem]) -> None:
    # Reuse rows by id so an unchanged item is updated in place, never re-inserted
    existing: Dict[str, MediaItemRecord] = {m.id: m for m in (record.media_items or [])}
    synced = []
    for position, item in enumerate(items):
        media_record = existing.get(str(item.id)) or MediaItemRecord()
        apply_media(media_record, item)
        media_record.position = position
        synced.append(media_record)
    record.media_items = synced


def post_to_record(post: Post) -> PostRecord:
    record = PostRecord()
    record.media_items = []
    return apply_post(record, post)


# ============================================================
# PERSONAS
# ============================================================

def record_to_persona(record: PersonaRecord) -> Persona:
    _require(record, "Persona", "id", "user_id", "name", "color", "icon", "created_at")
    return _build(
        "Persona",
        Persona,
        id=UUID(record.id),
        name=record.name,
        color=record.color,
        icon=record.icon,
        description=record.description,
        created_at=record.created_at,
        is_default=bool(record.is_default),
        user_id=UUID(record.user_id),
    )


def apply_persona(record: PersonaRecord, persona: Persona) -> PersonaRecord:
    record.id = str(persona.id)
    record.user_id = str(persona.user_id)
    record.name = persona.name
    record.color = persona.color.value
    record.icon = persona.icon.value
    record.description = persona.description
    record.created_at = persona.created_at
    record.is_default = persona.is_default
    return record


def persona_to_record(persona: Persona) -> PersonaRecord:
    return apply_persona(PersonaRecord(), persona)


# ============================================================
# USERS
# ============================================================

def record_to_user(record: UserRecord) -> User:
    _require(record, "User", "id", "name", "created_at")
    try:
        preferences = (
            UserPreferences.model_validate(record.preferences)
            if record.preferences is not None
            else UserPreferences()
        )
    except ValidationError as e:
        raise MappingError(f"Invalid preferences in User record: {e}", details={"id": record.id}) from e
    return _build(
        "User",
        User,
        id=UUID(record.id),
        name=record.name,
        bio=record.bio,
        email=record.email,
        profile_photo_filename=record.profile_photo_filename,
        created_at=record.created_at,
        updated_at=record.updated_at,
        persona_ids=[UUID(p.id) for p in (record.personas or [])],
        preferences=preferences,
        is_premium=bool(record.is_premium),
        premium_expires_at=record.premium_expires_at,
        total_posts=record.total_posts or 0,
        current_streak=record.current_streak or 0,
        longest_streak=record.longest_streak or 0,
    )


def apply_user(record: UserRecord, user: User) -> UserRecord:
    """Persona ownership lives on the persona rows, so persona_ids is not written."""
    record.id = str(user.id)
    record.name = user.name
    record.bio = user.bio
    record.email = user.email
    record.profile_photo_filename = user.profile_photo_filename
    record.created_at = user.created_at
    record.updated_at = user.updated_at
    record.preferences = user.preferences.model_dump(mode="json")
    record.is_premium = user.is_premium
    record.premium_expires_at = user.premium_expires_at
    record.total_posts = user.total_posts
    record.current_streak = user.current_streak
    record.longest_streak = user.longest_streak
    return record


def user_to_record(user: User) -> UserRecord:
    return apply_user(UserRecord(), user)


# ============================================================
# MEMORIES
# ============================================================

def memory_type_identifier(memory_type: MemoryType) -> str:
    """Storage encoding of a memory type."""
    if isinstance(memory_type, OnThisDay):
        return f"{ON_THIS_DAY_PREFIX}{memory_type.years_ago}"
    if isinstance(memory_type, ThisWeekLastYear):
        return THIS_WEEK_LAST_YEAR
    if isinstance(memory_type, RandomThrowback):
        return RANDOM_THROWBACK
    raise MappingError(f"Unknown memory type: {memory_type!r}")


def memory_type_from_identifier(identifier: str) -> MemoryType:
    if identifier.startswith(ON_THIS_DAY_PREFIX):
        years = identifier[len(ON_THIS_DAY_PREFIX):]
        if years.isdigit() and int(years) > 0:
            return OnThisDay(years_ago=int(years))
    elif identifier == THIS_WEEK_LAST_YEAR:
        return ThisWeekLastYear()
    elif identifier == RANDOM_THROWBACK:
        return RandomThrowback()
    raise MappingError(f"Invalid memory type identifier: {identifier!r}", details={"identifier": identifier})


def record_to_memory(record: MemoryRecord) -> Memory:
    _require(record, "Memory", "id", "post_id", "memory_type", "presented_at")
    if record.post is None:
        raise MappingError(
            "Memory record references a post that no longer exists",
            details={"id": record.id, "post_id": record.post_id},
        )
    return _build(
        "Memory",
        Memory,
        id=UUID(record.id),
        post=record_to_post(record.post),
        memory_type=memory_type_from_identifier(record.memory_type),
        presented_at=record.presented_at,
        was_viewed=bool(record.was_viewed),
        notes=record.notes,
    )


def apply_memory(record: MemoryRecord, memory: Memory) -> MemoryRecord:
    """Only presentation state is stored; the post itself is referenced, never copied."""
    record.id = str(memory.id)
    record.post_id = str(memory.post.id)
    record.memory_type = memory_type_identifier(memory.memory_type)
    record.presented_at = memory.presented_at
    record.was_viewed = memory.was_viewed
    record.notes = memory.notes
    return record


def memory_to_record(memory: Memory) -> MemoryRecord:
    return apply_memory(MemoryRecord(), memory)
