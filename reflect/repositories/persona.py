"""
Persona repository: context buckets, the per-user default, and persona statistics.
"""
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import conflict
from ..logging_config import repo_logger, timed
from ..mappers import apply_persona, persona_to_record, record_to_persona
from ..models import PersonaRecord, PostRecord, UserRecord
from ..schemas import Persona, PersonaColor, PersonaPreset, can_create_persona
from .base import Repository, key

DEFAULT_FIRST = (PersonaRecord.is_default.desc(), PersonaRecord.created_at, PersonaRecord.id)


def _owned_by(user_id: UUID):
    return PersonaRecord.user_id == key(user_id)


async def name_is_free(
    session: AsyncSession, name: str, user_id: UUID, excluding_id: Optional[UUID] = None
) -> bool:
    """Case-insensitive check against the user's other personas."""
    stmt = select(func.count()).select_from(PersonaRecord).where(
        _owned_by(user_id),
        func.lower(PersonaRecord.name) == name.strip().lower(),
    )
    if excluding_id is not None:
        stmt = stmt.where(PersonaRecord.id != key(excluding_id))
    return (await session.scalar(stmt) or 0) == 0


async def require_free_name(
    session: AsyncSession, name: str, user_id: UUID, excluding_id: Optional[UUID] = None
) -> None:
    if not await name_is_free(session, name, user_id, excluding_id):
        conflict(
            f"A persona named '{name.strip()}' already exists",
            details={"name": name, "user_id": str(user_id)},
        )


async def clear_defaults(session: AsyncSession, user_id: UUID) -> None:
    await session.execute(
        update(PersonaRecord)
        .where(_owned_by(user_id), PersonaRecord.is_default.is_(True))
        .values(is_default=False)
    )


class PersonaRepository(Repository):
    resource = "Persona"
    model = PersonaRecord

    # ============================================================
    # CRUD
    # ============================================================

    @timed(repo_logger)
    async def create(self, persona: Persona) -> Persona:
        """Insert a persona. A new default replaces the user's previous default."""
        async with self.store.transaction("create persona") as session:
            await self._require_reference(session, UserRecord, persona.user_id, "User")
            if await session.get(PersonaRecord, key(persona.id)) is not None:
                conflict(f"Persona '{persona.id}' already exists", details={"id": str(persona.id)})
            await require_free_name(session, persona.name, persona.user_id)
            if persona.is_default:
                await clear_defaults(session, persona.user_id)
            session.add(persona_to_record(persona))

        repo_logger.info("Persona created", persona_id=str(persona.id), name=persona.name, is_default=persona.is_default)
        return persona

    async def fetch(self, id: UUID) -> Optional[Persona]:
        record = await self.store.fetch_by_id(PersonaRecord, key(id))
        return record_to_persona(record) if record else None

    async def fetch_all(self) -> List[Persona]:
        records = await self.store.fetch_all(PersonaRecord, order_by=DEFAULT_FIRST)
        return [record_to_persona(r) for r in records]

    @timed(repo_logger)
    async def update(self, persona: Persona) -> Persona:
        """Replace the stored persona. A default moved to another user displaces that user's default."""
        async with self.store.transaction("update persona") as session:
            record = await self._get_or_404(session, persona.id)
            moved = record.user_id != key(persona.user_id)
            if moved:
                await self._require_reference(session, UserRecord, persona.user_id, "User")
            await require_free_name(session, persona.name, persona.user_id, excluding_id=persona.id)
            if persona.is_default and (moved or not record.is_default):
                await clear_defaults(session, persona.user_id)
            apply_persona(record, persona)

        repo_logger.info("Persona updated", persona_id=str(persona.id))
        return persona

    async def delete(self, id: UUID) -> None:
        """Delete the persona and, by cascade, all of its posts."""
        await self._delete_or_404(id)
        repo_logger.info("Persona deleted", persona_id=str(id))

    # ============================================================
    # USER QUERIES
    # ============================================================

    async def fetch_personas(self, user_id: UUID) -> List[Persona]:
        """The user's personas, default first, then oldest first."""
        records = await self.store.fetch(PersonaRecord, _owned_by(user_id), order_by=DEFAULT_FIRST)
        return [record_to_persona(r) for r in records]

    async def fetch_personas_with_color(self, color: PersonaColor, user_id: UUID) -> List[Persona]:
        records = await self.store.fetch(
            PersonaRecord, _owned_by(user_id), PersonaRecord.color == color.value, order_by=DEFAULT_FIRST
        )
        return [record_to_persona(r) for r in records]

    async def fetch_default_persona(self, user_id: UUID) -> Optional[Persona]:
        records = await self.store.fetch(
            PersonaRecord,
            _owned_by(user_id),
            PersonaRecord.is_default.is_(True),
            order_by=DEFAULT_FIRST,
            limit=1,
        )
        return record_to_persona(records[0]) if records else None

    async def fetch_persona_count(self, user_id: UUID) -> int:
        return await self.store.count(PersonaRecord, _owned_by(user_id))

    # ============================================================
    # DEFAULT PERSONA
    # ============================================================

    @timed(repo_logger)
    async def set_default_persona(self, persona_id: UUID, user_id: UUID) -> None:
        """Make this persona the user's only default, in one transaction."""
        async with self.store.transaction("set default persona") as session:
            record = await self._get_or_404(session, persona_id)
            if record.user_id != key(user_id):
                conflict(
                    f"Persona '{persona_id}' does not belong to user '{user_id}'",
                    details={"persona_id": str(persona_id), "user_id": str(user_id)},
                )
            await clear_defaults(session, user_id)
            record.is_default = True

        repo_logger.info("Default persona set", persona_id=str(persona_id), user_id=str(user_id))

    async def clear_default_persona(self, user_id: UUID) -> None:
        async with self.store.transaction("clear default persona") as session:
            await clear_defaults(session, user_id)

    # ============================================================
    # VALIDATION
    # ============================================================

    async def is_persona_name_unique(self, name: str, user_id: UUID, excluding_id: Optional[UUID] = None) -> bool:
        """Case-insensitive name check within one user's personas."""
        async with self.store.session() as session:
            return await name_is_free(session, name, user_id, excluding_id)

    async def can_create_persona(self, user_id: UUID, is_premium: bool) -> bool:
        return can_create_persona(await self.fetch_persona_count(user_id), is_premium)

    # ============================================================
    # PRESETS AND BULK
    # ============================================================

    async def create_from_preset(self, preset: PersonaPreset, user_id: UUID, is_default: bool = False) -> Persona:
        return await self.create(Persona.from_preset(preset, user_id, is_default=is_default))

    async def delete_all_personas(self, user_id: UUID) -> int:
        removed = await self.store.batch_delete(PersonaRecord, _owned_by(user_id))
        repo_logger.info("Personas deleted", user_id=str(user_id), count=removed)
        return removed

    # ============================================================
    # STATISTICS
    # ============================================================

    async def fetch_post_counts_by_persona(self, user_id: UUID) -> Dict[UUID, int]:
        """Post count for every persona of the user, zero included."""
        rows = await self.store.rows(
            select(PersonaRecord.id, func.count(PostRecord.id))
            .outerjoin(PostRecord, PostRecord.persona_id == PersonaRecord.id)
            .where(_owned_by(user_id))
            .group_by(PersonaRecord.id)
        )
        return {UUID(persona_id): count for persona_id, count in rows}

    async def fetch_most_used_persona(self, user_id: UUID) -> Optional[Tuple[Persona, int]]:
        """Persona with the most posts. Ties go to the default, then the oldest."""
        personas = await self.fetch_personas(user_id)
        if not personas:
            return None
        counts = await self.fetch_post_counts_by_persona(user_id)
        best = max(personas, key=lambda p: counts.get(p.id, 0))
        return best, counts.get(best.id, 0)
