"""
Pytest configuration and fixtures for Reflect tests.
"""
from datetime import datetime

import pytest
import pytest_asyncio

from reflect.database import Store
from reflect.mappers import user_to_record
from reflect.repositories import (
    AppSettingsRepository,
    MediaItemRepository,
    MemoryRepository,
    PersonaRepository,
    PostRepository,
    UserRepository,
)
from reflect.schemas import MediaItem, MediaType, Persona, PersonaColor, Post, User

# Fixed reference time for date-sensitive tests
NOW = datetime(2026, 6, 15, 12, 0, 0)


@pytest_asyncio.fixture
async def store():
    """Fresh in-memory database for each test."""
    store = Store.in_memory()
    await store.create_all()
    yield store
    await store.dispose()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def user_repo(store):
    return UserRepository(store)


@pytest.fixture
def persona_repo(store):
    return PersonaRepository(store)


@pytest.fixture
def post_repo(store):
    return PostRepository(store)


@pytest.fixture
def media_repo(store):
    return MediaItemRepository(store)


@pytest.fixture
def memory_repo(store):
    return MemoryRepository(store)


@pytest.fixture
def settings_repo(store):
    return AppSettingsRepository(store)


@pytest_asyncio.fixture
async def user(user_repo):
    """The installation's user."""
    return await user_repo.create(User(name="Ann", created_at=datetime(2024, 1, 1, 9, 0)))


@pytest_asyncio.fixture
async def other_user(store):
    """A second owner, written past the repository's one-user rule."""
    other = User(name="Bo", created_at=datetime(2024, 3, 1, 9, 0))
    await store.add(user_to_record(other))
    return other


@pytest_asyncio.fixture
async def persona(persona_repo, user):
    """Default persona for the test user."""
    return await persona_repo.create(
        Persona(
            name="Personal",
            color=PersonaColor.BLUE,
            is_default=True,
            user_id=user.id,
            created_at=datetime(2024, 1, 1, 9, 0),
        )
    )


@pytest.fixture
def make_post(persona):
    """Build (not store) a post on the default persona."""
    def _make(**fields):
        fields.setdefault("mood", 7)
        fields.setdefault("caption", "A day")
        fields.setdefault("created_at", NOW)
        fields.setdefault("persona_id", persona.id)
        return Post(**fields)
    return _make


@pytest.fixture
def make_media():
    """Build (not store) a media item for a post."""
    def _make(post_id, **fields):
        fields.setdefault("type", MediaType.PHOTO)
        fields.setdefault("filename", MediaItem.generate_filename(fields["type"]))
        fields.setdefault("file_size", 1_000)
        fields.setdefault("created_at", NOW)
        return MediaItem(post_id=post_id, **fields)
    return _make
