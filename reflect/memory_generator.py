"""
Memory generation.

The module-level functions are pure: they take a snapshot of posts and a
reference time and return candidate memories without touching the store.
`MemoryGenerator` wires them to the repositories to produce today's set.
"""
import random
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from .config import Settings, get_settings
from .dates import add_months, add_years
from .logging_config import memory_logger, timed
from .schemas import Memory, OnThisDay, Post, RandomThrowback, ThisWeekLastYear

DAILY_MEMORY_TARGET = 5
DEFAULT_MAX_RANDOM = 2
DEFAULT_THROWBACK_COUNT = 3
THROWBACK_MIN_AGE_MONTHS = 6
WEEK_WINDOW = timedelta(days=7)


def generate_on_this_day_memories(posts: Sequence[Post], now: Optional[datetime] = None) -> List[Memory]:
    """Posts from today's month and day in an earlier year."""
    now = now or datetime.now()
    memories = []
    for post in posts:
        created = post.created_at
        if (created.month, created.day) != (now.month, now.day):
            continue
        years_ago = now.year - created.year
        if years_ago > 0:
            memories.append(Memory(post=post, memory_type=OnThisDay(years_ago=years_ago), presented_at=now))
    return memories


def generate_this_week_last_year_memories(posts: Sequence[Post], now: Optional[datetime] = None) -> List[Memory]:
    """Posts within seven days either side of this moment one year ago, ends included."""
    now = now or datetime.now()
    last_year = add_years(now, -1)
    start, end = last_year - WEEK_WINDOW, last_year + WEEK_WINDOW
    return [
        Memory(post=post, memory_type=ThisWeekLastYear(), presented_at=now)
        for post in posts
        if start <= post.created_at <= end
    ]


def generate_random_throwbacks(
    posts: Sequence[Post],
    count: int = DEFAULT_THROWBACK_COUNT,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    min_age_months: int = THROWBACK_MIN_AGE_MONTHS,
) -> List[Memory]:
    """Up to `count` posts older than the cutoff, chosen uniformly at random."""
    now = now or datetime.now()
    cutoff = add_months(now, -min_age_months)
    old_posts = [p for p in posts if p.created_at < cutoff]
    picked = (rng or random).sample(old_posts, min(max(count, 0), len(old_posts)))
    return [Memory(post=post, memory_type=RandomThrowback(), presented_at=now) for post in picked]


def generate_daily_memories(
    posts: Sequence[Post],
    max_random: int = DEFAULT_MAX_RANDOM,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    target: int = DAILY_MEMORY_TARGET,
    min_age_months: int = THROWBACK_MIN_AGE_MONTHS,
) -> List[Memory]:
    """
    On-this-day and this-week-last-year memories, topped up with random
    throwbacks while the total is under the target.

    A post that qualifies for more than one category appears once per category.
    """
    now = now or datetime.now()
    memories = generate_on_this_day_memories(posts, now)
    memories += generate_this_week_last_year_memories(posts, now)
    if len(memories) < target:
        memories += generate_random_throwbacks(
            posts,
            count=min(max_random, target - len(memories)),
            now=now,
            rng=rng,
            min_age_months=min_age_months,
        )
    return memories


class MemoryGenerator:
    """Builds and stores the day's memories from the post history."""

    def __init__(self, post_repository, memory_repository, settings: Optional[Settings] = None, rng=None):
        self.posts = post_repository
        self.memories = memory_repository
        self.settings = settings or get_settings()
        self.rng = rng

    @timed(memory_logger)
    async def generate_todays_memories(self, now: Optional[datetime] = None, force: bool = False) -> List[Memory]:
        """
        Return today's memories, generating and saving them on the first call of
        the day. With `force`, generate again even if some already exist; posts
        already presented today are never saved twice.
        """
        now = now or datetime.now()
        if not force and await self.memories.has_todays_memories(now):
            return await self.memories.fetch_todays_memories(now)

        posts = await self.posts.fetch_visible_posts(now)
        candidates = generate_daily_memories(
            posts,
            max_random=self.settings.daily_memory_max_random,
            now=now,
            rng=self.rng,
            target=self.settings.daily_memory_target,
            min_age_months=self.settings.throwback_min_age_months,
        )

        presented = await self.memories.fetch_todays_memory_post_ids(now)
        fresh = [m for m in candidates if m.post.id not in presented]
        if fresh:
            await self.memories.save_daily_memories(fresh)

        memory_logger.info(
            "Daily memories generated",
            posts=len(posts),
            candidates=len(candidates),
            saved=len(fresh),
            forced=force,
        )
        return await self.memories.fetch_todays_memories(now)
