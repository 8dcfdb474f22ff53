"""
Post repository: CRUD, filtered queries, search and statistics over journal posts.
"""
import random
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import extract, func, or_, select

from ..dates import add_years, start_of_day
from ..errors import conflict
from ..logging_config import repo_logger, timed
from ..mappers import apply_post, post_to_record, record_to_post
from ..models import PersonaRecord, PostRecord
from ..schemas import Post, PostSearchCriteria
from ..streaks import compute_streaks
from .base import Repository, key

NEWEST_FIRST = (PostRecord.created_at.desc(), PostRecord.id)


def _top(counts: Counter, limit: int) -> List[Tuple[str, int]]:
    """Count descending, then value ascending."""
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return ranked[:max(limit, 0)]


class PostRepository(Repository):
    resource = "Post"
    model = PostRecord

    # ============================================================
    # CRUD
    # ============================================================

    @timed(repo_logger)
    async def create(self, post: Post) -> Post:
        async with self.store.transaction("create post") as session:
            await self._require_reference(session, PersonaRecord, post.persona_id, "Persona")
            if await session.get(PostRecord, key(post.id)) is not None:
                conflict(f"Post '{post.id}' already exists", details={"id": str(post.id)})
            session.add(post_to_record(post))

        repo_logger.info("Post created", post_id=str(post.id), persona_id=str(post.persona_id))
        return post

    async def create_batch(self, posts: Iterable[Post]) -> List[Post]:
        posts = list(posts)
        async with self.store.transaction("create posts") as session:
            for post in posts:
                await self._require_reference(session, PersonaRecord, post.persona_id, "Persona")
                session.add(post_to_record(post))

        repo_logger.info("Posts created", count=len(posts))
        return posts

    async def fetch(self, id: UUID) -> Optional[Post]:
        record = await self.store.fetch_by_id(PostRecord, key(id))
        return record_to_post(record) if record else None

    async def fetch_all(self) -> List[Post]:
        return await self._fetch()

    @timed(repo_logger)
    async def update(self, post: Post) -> Post:
        """Replace every stored field of the post, media items included."""
        async with self.store.transaction("update post") as session:
            record = await self._get_or_404(session, post.id)
            if record.persona_id != key(post.persona_id):
                await self._require_reference(session, PersonaRecord, post.persona_id, "Persona")
            apply_post(record, post)

        repo_logger.info("Post updated", post_id=str(post.id))
        return post

    async def delete(self, id: UUID) -> None:
        await self._delete_or_404(id)
        repo_logger.info("Post deleted", post_id=str(id))

    # ============================================================
    # FILTERED QUERIES
    # ============================================================

    async def _fetch(self, *criteria, limit: Optional[int] = None, offset: Optional[int] = None) -> List[Post]:
        records = await self.store.fetch(PostRecord, *criteria, order_by=NEWEST_FIRST, limit=limit, offset=offset)
        return [record_to_post(r) for r in records]

    async def fetch_posts_for_persona(
        self, persona_id: UUID, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> List[Post]:
        return await self._fetch(PostRecord.persona_id == key(persona_id), limit=limit, offset=offset)

    async def fetch_posts_in_range(self, start: datetime, end: datetime) -> List[Post]:
        """Posts created between start and end, both inclusive."""
        return await self._fetch(PostRecord.created_at >= start, PostRecord.created_at <= end)

    async def fetch_posts_with_mood(self, mood: int) -> List[Post]:
        return await self._fetch(PostRecord.mood == mood)

    async def fetch_posts_with_mood_between(self, min_mood: int, max_mood: int) -> List[Post]:
        return await self._fetch(PostRecord.mood >= min_mood, PostRecord.mood <= max_mood)

    async def fetch_posts_containing_any_tag(self, tags: Iterable[str]) -> List[Post]:
        """Posts whose activity or people tags share at least one tag."""
        wanted = set(tags)
        return [p for p in await self._fetch() if wanted & set(p.all_tags)]

    async def fetch_posts_containing_all_tags(self, tags: Iterable[str]) -> List[Post]:
        wanted = set(tags)
        return [p for p in await self._fetch() if wanted <= set(p.all_tags)]

    async def fetch_posts_mentioning(self, people: Iterable[str]) -> List[Post]:
        wanted = set(people)
        return [p for p in await self._fetch() if wanted & set(p.people_tags)]

    async def fetch_posts_with_media(self) -> List[Post]:
        return [p for p in await self._fetch() if p.has_media]

    async def fetch_posts_without_media(self) -> List[Post]:
        return [p for p in await self._fetch() if not p.has_media]

    async def fetch_special_posts(self) -> List[Post]:
        return await self._fetch(
            or_(
                PostRecord.is_gratitude.is_(True),
                PostRecord.is_rant.is_(True),
                PostRecord.is_dream.is_(True),
                PostRecord.is_future_you.is_(True),
            )
        )

    async def fetch_visible_posts(self, now: Optional[datetime] = None) -> List[Post]:
        """Posts that are not scheduled, or whose scheduled time has come."""
        now = now or datetime.now()
        return await self._fetch(or_(PostRecord.scheduled_for.is_(None), PostRecord.scheduled_for <= now))

    async def fetch_expired_posts(self, now: Optional[datetime] = None) -> List[Post]:
        now = now or datetime.now()
        return await self._fetch(PostRecord.auto_delete_date.is_not(None), PostRecord.auto_delete_date <= now)

    # ============================================================
    # SEARCH
    # ============================================================

    @staticmethod
    def _caption_contains(query: str):
        return func.lower(PostRecord.caption).contains(query.lower(), autoescape=True)

    async def search_posts(self, query: str) -> List[Post]:
        """Case-insensitive substring search over captions. A blank query matches nothing."""
        query = query.strip()
        if not query:
            return []
        return await self._fetch(self._caption_contains(query))

    @timed(repo_logger)
    async def search(self, criteria: PostSearchCriteria) -> List[Post]:
        """Posts matching every criterion that is set."""
        clauses = []
        if criteria.query and criteria.query.strip():
            clauses.append(self._caption_contains(criteria.query.strip()))
        if criteria.persona_ids:
            clauses.append(PostRecord.persona_id.in_([key(p) for p in criteria.persona_ids]))
        if criteria.mood_range is not None:
            low, high = criteria.mood_range
            clauses.extend([PostRecord.mood >= low, PostRecord.mood <= high])
        if criteria.date_range is not None:
            start, end = criteria.date_range
            clauses.extend([PostRecord.created_at >= start, PostRecord.created_at <= end])

        posts = await self._fetch(*clauses)

        # JSON tag columns and media presence are filtered on the entities
        if criteria.tags:
            wanted = set(criteria.tags)
            posts = [p for p in posts if wanted & set(p.all_tags)]
        if criteria.has_media is not None:
            posts = [p for p in posts if p.has_media == criteria.has_media]
        return posts

    # ============================================================
    # MEMORY QUERIES
    # ============================================================

    async def fetch_posts_on_this_day(self, day: date) -> List[Post]:
        """Posts from the same month and day in any other year."""
        return await self._fetch(
            extract("month", PostRecord.created_at) == day.month,
            extract("day", PostRecord.created_at) == day.day,
            extract("year", PostRecord.created_at) != day.year,
        )

    async def fetch_posts_from_this_week_last_year(self, day: date) -> List[Post]:
        """Posts from the same ISO week number, one ISO year earlier."""
        iso_year, iso_week, _ = day.isocalendar()
        anchor = start_of_day(add_years(day, -1))
        window = timedelta(days=14)
        candidates = await self._fetch(
            PostRecord.created_at >= anchor - window,
            PostRecord.created_at < anchor + window,
        )
        return [p for p in candidates if p.created_at.isocalendar()[:2] == (iso_year - 1, iso_week)]

    async def fetch_random_old_posts(
        self, older_than: datetime, count: int, rng: Optional[random.Random] = None
    ) -> List[Post]:
        old_posts = await self._fetch(PostRecord.created_at < older_than)
        return (rng or random).sample(old_posts, min(max(count, 0), len(old_posts)))

    # ============================================================
    # STATISTICS
    # ============================================================

    async def fetch_post_count(self) -> int:
        return await self.store.count(PostRecord)

    async def fetch_post_count_for_persona(self, persona_id: UUID) -> int:
        return await self.store.count(PostRecord, PostRecord.persona_id == key(persona_id))

    async def fetch_post_count_in_range(self, start: datetime, end: datetime) -> int:
        return await self.store.count(PostRecord, PostRecord.created_at >= start, PostRecord.created_at <= end)

    async def fetch_average_mood(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> Optional[float]:
        """Mean mood, optionally within an inclusive date range. None when there are no posts."""
        stmt = select(func.avg(PostRecord.mood))
        if start is not None:
            stmt = stmt.where(PostRecord.created_at >= start)
        if end is not None:
            stmt = stmt.where(PostRecord.created_at <= end)
        average = await self.store.scalar(stmt)
        return float(average) if average is not None else None

    async def fetch_mood_distribution(self) -> Dict[int, int]:
        rows = await self.store.rows(
            select(PostRecord.mood, func.count()).group_by(PostRecord.mood).order_by(PostRecord.mood)
        )
        return {mood: count for mood, count in rows}

    async def fetch_most_used_tags(self, limit: int) -> List[Tuple[str, int]]:
        counts = Counter()
        for post in await self._fetch():
            counts.update(post.activity_tags + post.people_tags)
        return _top(counts, limit)

    async def fetch_most_mentioned_people(self, limit: int) -> List[Tuple[str, int]]:
        counts = Counter()
        for post in await self._fetch():
            counts.update(post.people_tags)
        return _top(counts, limit)

    async def fetch_posting_dates(self) -> List[datetime]:
        """Start-of-day of every post, newest first."""
        records = await self.store.rows(select(PostRecord.created_at).order_by(*NEWEST_FIRST))
        return [start_of_day(created_at) for (created_at,) in records]

    async def fetch_first_post_date(self) -> Optional[datetime]:
        return await self.store.scalar(select(func.min(PostRecord.created_at)))

    async def fetch_most_recent_post_date(self) -> Optional[datetime]:
        return await self.store.scalar(select(func.max(PostRecord.created_at)))

    async def fetch_streaks(self, today: Optional[date] = None) -> Tuple[int, int]:
        """(current, longest) streak computed from posting dates. User counters are untouched."""
        return compute_streaks(await self.fetch_posting_dates(), today)

    # ============================================================
    # BATCH OPERATIONS
    # ============================================================

    async def delete_posts(self, ids: Iterable[UUID]) -> int:
        """Delete the given posts; unknown ids are skipped."""
        removed = await self.store.delete_many(PostRecord, [key(i) for i in ids])
        repo_logger.info("Posts deleted", count=removed)
        return removed

    async def delete_all_posts_for_persona(self, persona_id: UUID) -> int:
        return await self.store.batch_delete(PostRecord, PostRecord.persona_id == key(persona_id))

    async def delete_all_posts_older_than(self, cutoff: datetime) -> int:
        removed = await self.store.batch_delete(PostRecord, PostRecord.created_at < cutoff)
        repo_logger.info("Old posts deleted", cutoff=cutoff, count=removed)
        return removed

    async def delete_expired_posts(self, now: Optional[datetime] = None) -> int:
        """Remove posts whose auto-delete date has passed. Nothing calls this automatically."""
        now = now or datetime.now()
        removed = await self.store.batch_delete(
            PostRecord, PostRecord.auto_delete_date.is_not(None), PostRecord.auto_delete_date <= now
        )
        repo_logger.info("Expired posts deleted", count=removed)
        return removed
