"""
Memory repository: presentation bookkeeping for memories surfaced to the user.

Only the view state (which post, when, viewed, notes) is stored. The post
itself is loaded live with every memory.
"""
from collections import Counter
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Set
from uuid import UUID

from sqlalchemy import func, select, update

from ..dates import day_bounds
from ..errors import conflict
from ..logging_config import repo_logger, timed
from ..mappers import (
    ON_THIS_DAY_PREFIX,
    RANDOM_THROWBACK,
    THIS_WEEK_LAST_YEAR,
    apply_memory,
    memory_to_record,
    memory_type_from_identifier,
    memory_type_identifier,
    record_to_memory,
)
from ..models import MemoryRecord, PostRecord
from ..schemas import Memory, MemoryType, OnThisDay
from .base import Repository, key

NEWEST_FIRST = (MemoryRecord.presented_at.desc(), MemoryRecord.id)

_IS_ON_THIS_DAY = MemoryRecord.memory_type.startswith(ON_THIS_DAY_PREFIX)
_HAS_NOTES = (MemoryRecord.notes.is_not(None), MemoryRecord.notes != "")


def _presented_on(day: date):
    start, end = day_bounds(day)
    return (MemoryRecord.presented_at >= start, MemoryRecord.presented_at < end)


class MemoryRepository(Repository):
    resource = "Memory"
    model = MemoryRecord

    # ============================================================
    # CRUD
    # ============================================================

    async def create(self, memory: Memory) -> Memory:
        return (await self.create_batch([memory]))[0]

    @timed(repo_logger)
    async def create_batch(self, memories: Iterable[Memory]) -> List[Memory]:
        memories = list(memories)
        async with self.store.transaction("create memories") as session:
            for memory in memories:
                await self._require_reference(session, PostRecord, memory.post.id, "Post")
                if await session.get(MemoryRecord, key(memory.id)) is not None:
                    conflict(f"Memory '{memory.id}' already exists", details={"id": str(memory.id)})
                session.add(memory_to_record(memory))

        repo_logger.info("Memories saved", count=len(memories))
        return memories

    async def fetch(self, id: UUID) -> Optional[Memory]:
        record = await self.store.fetch_by_id(MemoryRecord, key(id))
        return record_to_memory(record) if record else None

    async def update(self, memory: Memory) -> Memory:
        """Replace the stored view state of a memory."""
        async with self.store.transaction("update memory") as session:
            record = await self._get_or_404(session, memory.id)
            if record.post_id != key(memory.post.id):
                await self._require_reference(session, PostRecord, memory.post.id, "Post")
            apply_memory(record, memory)
        return memory

    async def delete(self, id: UUID) -> None:
        await self._delete_or_404(id)

    async def delete_batch(self, ids: Iterable[UUID]) -> int:
        return await self.store.delete_many(MemoryRecord, [key(i) for i in ids])

    # ============================================================
    # DAILY MEMORIES
    # ============================================================

    async def save_daily_memories(self, memories: Iterable[Memory]) -> List[Memory]:
        return await self.create_batch(memories)

    async def fetch_memories_for_date(self, day: date) -> List[Memory]:
        return await self._fetch(*_presented_on(day))

    async def fetch_todays_memories(self, now: Optional[datetime] = None) -> List[Memory]:
        return await self.fetch_memories_for_date(now or datetime.now())

    async def has_todays_memories(self, now: Optional[datetime] = None) -> bool:
        return await self.store.count(MemoryRecord, *_presented_on(now or datetime.now())) > 0

    async def fetch_todays_unviewed_memories(self, now: Optional[datetime] = None) -> List[Memory]:
        return await self._fetch(*_presented_on(now or datetime.now()), MemoryRecord.was_viewed.is_(False))

    async def fetch_todays_memory_post_ids(self, now: Optional[datetime] = None) -> Set[UUID]:
        rows = await self.store.rows(select(MemoryRecord.post_id).where(*_presented_on(now or datetime.now())))
        return {UUID(post_id) for (post_id,) in rows}

    async def has_post_been_presented_as_memory(self, post_id: UUID, day: date) -> bool:
        return await self.store.count(
            MemoryRecord, MemoryRecord.post_id == key(post_id), *_presented_on(day)
        ) > 0

    async def fetch_last_presentation_date(self, post_id: UUID) -> Optional[datetime]:
        return await self.store.scalar(
            select(func.max(MemoryRecord.presented_at)).where(MemoryRecord.post_id == key(post_id))
        )

    # ============================================================
    # VIEW STATE
    # ============================================================

    async def mark_as_viewed(self, memory_id: UUID) -> None:
        async with self.store.transaction("mark memory viewed") as session:
            record = await self._get_or_404(session, memory_id)
            record.was_viewed = True

    async def mark_many_as_viewed(self, memory_ids: Iterable[UUID]) -> int:
        """Mark every listed memory viewed. Unknown ids are ignored."""
        ids = [key(i) for i in memory_ids]
        if not ids:
            return 0
        async with self.store.transaction("mark memories viewed") as session:
            result = await session.execute(
                update(MemoryRecord).where(MemoryRecord.id.in_(ids)).values(was_viewed=True)
            )
        return result.rowcount or 0

    async def update_notes(self, memory_id: UUID, notes: Optional[str]) -> None:
        async with self.store.transaction("update memory notes") as session:
            record = await self._get_or_404(session, memory_id)
            record.notes = notes

    # ============================================================
    # QUERIES
    # ============================================================

    async def _fetch(self, *criteria) -> List[Memory]:
        records = await self.store.fetch(MemoryRecord, *criteria, order_by=NEWEST_FIRST)
        return [record_to_memory(r) for r in records]

    async def fetch_all_memories(self) -> List[Memory]:
        return await self._fetch()

    async def fetch_memories_in_range(self, start: datetime, end: datetime) -> List[Memory]:
        return await self._fetch(MemoryRecord.presented_at >= start, MemoryRecord.presented_at <= end)

    async def fetch_memories_for_post(self, post_id: UUID) -> List[Memory]:
        return await self._fetch(MemoryRecord.post_id == key(post_id))

    async def fetch_memories_of_type(self, memory_type: MemoryType) -> List[Memory]:
        """Exact type match; on-this-day memories must also match years_ago."""
        return await self._fetch(MemoryRecord.memory_type == memory_type_identifier(memory_type))

    async def fetch_on_this_day_memories(self) -> List[Memory]:
        return await self._fetch(_IS_ON_THIS_DAY)

    async def fetch_this_week_last_year_memories(self) -> List[Memory]:
        return await self._fetch(MemoryRecord.memory_type == THIS_WEEK_LAST_YEAR)

    async def fetch_random_throwback_memories(self) -> List[Memory]:
        return await self._fetch(MemoryRecord.memory_type == RANDOM_THROWBACK)

    async def fetch_viewed_memories(self) -> List[Memory]:
        return await self._fetch(MemoryRecord.was_viewed.is_(True))

    async def fetch_unviewed_memories(self) -> List[Memory]:
        return await self._fetch(MemoryRecord.was_viewed.is_(False))

    async def fetch_memories_with_notes(self) -> List[Memory]:
        return await self._fetch(*_HAS_NOTES)

    # ============================================================
    # STATISTICS
    # ============================================================

    async def fetch_memory_count(self) -> int:
        return await self.store.count(MemoryRecord)

    async def fetch_viewed_memory_count(self) -> int:
        return await self.store.count(MemoryRecord, MemoryRecord.was_viewed.is_(True))

    async def fetch_memories_with_notes_count(self) -> int:
        return await self.store.count(MemoryRecord, *_HAS_NOTES)

    async def fetch_engagement_rate(self) -> float:
        """Share of memories the user has viewed, 0.0 when there are none."""
        total = await self.fetch_memory_count()
        if total == 0:
            return 0.0
        return await self.fetch_viewed_memory_count() / total

    async def fetch_memory_counts_by_type(self) -> Dict[str, int]:
        """Counts keyed by memory kind (on_this_day, this_week_last_year, random_throwback)."""
        rows = await self.store.rows(
            select(MemoryRecord.memory_type, func.count()).group_by(MemoryRecord.memory_type)
        )
        counts = Counter()
        for identifier, count in rows:
            counts[memory_type_from_identifier(identifier).kind] += count
        return dict(counts)

    async def fetch_engagement_by_years_ago(self) -> Dict[int, int]:
        """Viewed on-this-day memories, counted by how many years back they reach."""
        rows = await self.store.rows(
            select(MemoryRecord.memory_type, func.count())
            .where(_IS_ON_THIS_DAY, MemoryRecord.was_viewed.is_(True))
            .group_by(MemoryRecord.memory_type)
        )
        engagement = {}
        for identifier, count in rows:
            memory_type = memory_type_from_identifier(identifier)
            if isinstance(memory_type, OnThisDay):
                engagement[memory_type.years_ago] = engagement.get(memory_type.years_ago, 0) + count
        return engagement

    # ============================================================
    # CLEANUP
    # ============================================================

    async def delete_memories_older_than(self, cutoff: datetime, include_unviewed: bool = True) -> int:
        """Remove memories presented before cutoff, optionally keeping ones never viewed."""
        criteria = [MemoryRecord.presented_at < cutoff]
        if not include_unviewed:
            criteria.append(MemoryRecord.was_viewed.is_(True))
        removed = await self.store.batch_delete(MemoryRecord, *criteria)
        repo_logger.info("Old memories deleted", cutoff=cutoff, include_unviewed=include_unviewed, count=removed)
        return removed

    async def delete_viewed_memories_older_than(self, cutoff: datetime) -> int:
        return await self.delete_memories_older_than(cutoff, include_unviewed=False)

    async def delete_memories_for_post(self, post_id: UUID) -> int:
        return await self.store.batch_delete(MemoryRecord, MemoryRecord.post_id == key(post_id))

    async def delete_all_memories(self) -> int:
        return await self.store.batch_delete(MemoryRecord)
