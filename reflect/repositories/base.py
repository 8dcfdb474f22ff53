"""
Shared plumbing for repositories backed by the async store.
"""
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..database import Store
from ..errors import missing_reference, not_found


def key(id: UUID) -> str:
    """Primary-key form of an entity id."""
    return str(id)


class Repository:
    """Base class: holds the store and the common existence checks."""

    resource = "Record"
    model: Any = None

    def __init__(self, store: Store):
        self.store = store

    async def _get_or_404(self, session: AsyncSession, id: UUID, model: Any = None, resource: Optional[str] = None):
        record = await session.get(model or self.model, key(id))
        if record is None:
            not_found(resource or self.resource, id)
        return record

    async def _require_reference(self, session: AsyncSession, model: Any, id: UUID, resource: str):
        record = await session.get(model, key(id))
        if record is None:
            missing_reference(resource, id)
        return record

    async def _delete_or_404(self, id: UUID) -> None:
        if not await self.store.delete_by_id(self.model, key(id)):
            not_found(self.resource, id)
