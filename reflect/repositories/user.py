"""
User repository: the single device owner, preferences, premium state and counters.
"""
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy import delete, select

from ..errors import conflict, not_found
from ..logging_config import repo_logger, timed
from ..mappers import apply_user, record_to_persona, record_to_post, record_to_user, user_to_record
from ..models import PersonaRecord, PostRecord, UserRecord
from ..schemas import AccountExport, User, UserPreferences, UserStatistics
from .base import Repository, key
from .persona import clear_defaults, require_free_name


class UserRepository(Repository):
    resource = "User"
    model = UserRecord

    # ============================================================
    # CRUD
    # ============================================================

    @timed(repo_logger)
    async def create(self, user: User) -> User:
        """Store the installation's user. A second user is refused."""
        async with self.store.transaction("create user") as session:
            existing = await session.scalar(select(UserRecord.id).limit(1))
            if existing is not None:
                conflict("A user already exists on this device", details={"existing_id": existing})
            session.add(user_to_record(user))

        repo_logger.info("User created", user_id=str(user.id))
        return user

    async def fetch(self, id: UUID) -> Optional[User]:
        record = await self.store.fetch_by_id(UserRecord, key(id))
        return record_to_user(record) if record else None

    async def fetch_current_user(self) -> Optional[User]:
        records = await self.store.fetch(UserRecord, order_by=(UserRecord.created_at,), limit=1)
        return record_to_user(records[0]) if records else None

    async def update(self, user: User) -> User:
        async with self.store.transaction("update user") as session:
            record = await self._get_or_404(session, user.id)
            apply_user(record, user)
        return user

    async def delete(self, id: UUID) -> None:
        """Delete the user; personas, posts, media and memories cascade."""
        await self._delete_or_404(id)
        repo_logger.info("User deleted", user_id=str(id))

    async def has_user(self) -> bool:
        return await self.store.count(UserRecord) > 0

    async def create_initial_user(self, name: str, bio: Optional[str] = None, email: Optional[str] = None) -> User:
        return await self.create(User(name=name, bio=bio, email=email))

    # ============================================================
    # FIELD UPDATES
    # ============================================================

    async def _mutate(self, user_id: UUID, change: Callable[[User], None], operation: str) -> User:
        """Read-modify-write through the entity so every change is validated."""
        async with self.store.transaction(operation) as session:
            record = await self._get_or_404(session, user_id)
            user = record_to_user(record)
            change(user)
            user.updated_at = datetime.now()
            apply_user(record, user)
        repo_logger.debug("User mutated", user_id=str(user_id), operation=operation)
        return user

    async def _require(self, user_id: UUID) -> User:
        user = await self.fetch(user_id)
        if user is None:
            not_found(self.resource, user_id)
        return user

    async def update_preferences(self, user_id: UUID, preferences: UserPreferences) -> User:
        def change(user: User):
            user.preferences = preferences
        return await self._mutate(user_id, change, "update preferences")

    async def fetch_preferences(self, user_id: UUID) -> UserPreferences:
        return (await self._require(user_id)).preferences

    async def update_premium_status(
        self, user_id: UUID, is_premium: bool, expires_at: Optional[datetime] = None
    ) -> User:
        def change(user: User):
            user.is_premium = is_premium
            user.premium_expires_at = expires_at
        user = await self._mutate(user_id, change, "update premium status")
        repo_logger.info("Premium status changed", user_id=str(user_id), is_premium=is_premium, expires_at=expires_at)
        return user

    async def has_active_premium(self, user_id: UUID, now: Optional[datetime] = None) -> bool:
        return (await self._require(user_id)).has_active_premium(now)

    # ── Statistics ────────────────────────────────────────────

    async def update_statistics(
        self, user_id: UUID, total_posts: int, current_streak: int, longest_streak: int
    ) -> User:
        def change(user: User):
            user.total_posts = total_posts
            user.current_streak = current_streak
            user.longest_streak = longest_streak
        return await self._mutate(user_id, change, "update statistics")

    async def fetch_statistics(self, user_id: UUID) -> UserStatistics:
        user = await self._require(user_id)
        return UserStatistics(
            total_posts=user.total_posts,
            current_streak=user.current_streak,
            longest_streak=user.longest_streak,
        )

    async def increment_post_count(self, user_id: UUID) -> User:
        def change(user: User):
            user.total_posts += 1
        return await self._mutate(user_id, change, "increment post count")

    async def decrement_post_count(self, user_id: UUID) -> User:
        """Never goes below zero."""
        def change(user: User):
            user.total_posts = max(0, user.total_posts - 1)
        return await self._mutate(user_id, change, "decrement post count")

    async def update_streaks(self, user_id: UUID, current_streak: int, longest_streak: int) -> User:
        def change(user: User):
            user.current_streak = current_streak
            user.longest_streak = longest_streak
        return await self._mutate(user_id, change, "update streaks")

    # ── Profile ───────────────────────────────────────────────

    async def update_profile(self, user_id: UUID, name: str, bio: Optional[str] = None) -> User:
        def change(user: User):
            user.name = name
            user.bio = bio
        return await self._mutate(user_id, change, "update profile")

    async def update_profile_photo(self, user_id: UUID, filename: Optional[str]) -> User:
        def change(user: User):
            user.profile_photo_filename = filename
        return await self._mutate(user_id, change, "update profile photo")

    # ============================================================
    # PERSONA OWNERSHIP
    # ============================================================

    async def add_persona(self, user_id: UUID, persona_id: UUID) -> None:
        """Move an existing persona to the user.

        The name must be free among the user's personas. A default persona
        displaces the user's current default.
        """
        async with self.store.transaction("add persona") as session:
            await self._get_or_404(session, user_id)
            persona = await self._get_or_404(session, persona_id, PersonaRecord, "Persona")
            if persona.user_id == key(user_id):
                return
            await require_free_name(session, persona.name, user_id, excluding_id=persona_id)
            if persona.is_default:
                await clear_defaults(session, user_id)
            persona.user_id = key(user_id)

        repo_logger.info("Persona added to user", user_id=str(user_id), persona_id=str(persona_id))

    async def remove_persona(self, user_id: UUID, persona_id: UUID) -> None:
        """Delete one of the user's personas. Its posts cascade with it."""
        async with self.store.transaction("remove persona") as session:
            persona = await self._get_or_404(session, persona_id, PersonaRecord, "Persona")
            if persona.user_id != key(user_id):
                conflict(
                    f"Persona '{persona_id}' does not belong to user '{user_id}'",
                    details={"persona_id": str(persona_id), "user_id": str(user_id)},
                )
            await session.execute(delete(PersonaRecord).where(PersonaRecord.id == key(persona_id)))

        repo_logger.info("Persona removed from user", user_id=str(user_id), persona_id=str(persona_id))

    async def fetch_persona_ids(self, user_id: UUID) -> List[UUID]:
        return (await self._require(user_id)).persona_ids

    # ============================================================
    # ACCOUNT
    # ============================================================

    async def delete_user_data(self, user_id: UUID) -> None:
        await self.delete(user_id)

    @timed(repo_logger)
    async def export_user_data(self, user_id: UUID) -> AccountExport:
        """Snapshot of the user with every persona and post they own."""
        async with self.store.session() as session:
            record = await self._get_or_404(session, user_id)
            user = record_to_user(record)
            personas = [record_to_persona(p) for p in record.personas]
            posts = (
                await session.scalars(
                    select(PostRecord)
                    .join(PersonaRecord, PostRecord.persona_id == PersonaRecord.id)
                    .where(PersonaRecord.user_id == key(user_id))
                    .order_by(PostRecord.created_at.desc(), PostRecord.id)
                )
            ).all()
            export = AccountExport(user=user, personas=personas, posts=[record_to_post(p) for p in posts])

        repo_logger.info("User data exported", user_id=str(user_id), personas=len(personas), posts=len(export.posts))
        return export
