"""Memories: past posts re-presented to the user."""
from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ..dates import LocalDatetime, days_between, whole_years_between
from .post import Post

FREE_MEMORY_LIMIT = 5


def is_within_free_limit(count: int) -> bool:
    """Daily memory count fits the free tier. Callers enforce."""
    return count <= FREE_MEMORY_LIMIT


class OnThisDay(BaseModel):
    kind: Literal["on_this_day"] = "on_this_day"
    years_ago: int = Field(ge=1)

    class Config:
        frozen = True

    @property
    def display_name(self) -> str:
        return "1 year ago" if self.years_ago == 1 else f"{self.years_ago} years ago"

    @property
    def title(self) -> str:
        suffix = "" if self.years_ago == 1 else "s"
        return f"On This Day • {self.years_ago} Year{suffix} Ago"


class ThisWeekLastYear(BaseModel):
    kind: Literal["this_week_last_year"] = "this_week_last_year"

    class Config:
        frozen = True

    @property
    def display_name(self) -> str:
        return "This week last year"

    @property
    def title(self) -> str:
        return "This Week Last Year"


class RandomThrowback(BaseModel):
    kind: Literal["random_throwback"] = "random_throwback"

    class Config:
        frozen = True

    @property
    def display_name(self) -> str:
        return "Throwback"

    @property
    def title(self) -> str:
        return "Random Memory"


MemoryType = Annotated[
    Union[OnThisDay, ThisWeekLastYear, RandomThrowback],
    Field(discriminator="kind"),
]


class Memory(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    post: Post
    memory_type: MemoryType
    presented_at: LocalDatetime = Field(default_factory=datetime.now)
    was_viewed: bool = False
    notes: Optional[str] = None

    class Config:
        validate_assignment = True

    @property
    def original_post_date(self) -> datetime:
        return self.post.created_at

    def days_ago(self, now: Optional[datetime] = None) -> int:
        return days_between(self.post.created_at, now or datetime.now())

    def years_ago(self, now: Optional[datetime] = None) -> int:
        return whole_years_between(self.post.created_at, now or datetime.now())

    def time_ago_formatted(self, now: Optional[datetime] = None) -> str:
        years = self.years_ago(now)
        days = self.days_ago(now)
        if years > 0:
            count, unit = years, "year"
        elif days >= 30:
            count, unit = days // 30, "month"
        elif days >= 7:
            count, unit = days // 7, "week"
        else:
            count, unit = days, "day"
        return f"{count} {unit}{'' if count == 1 else 's'} ago"
