"""Calendar arithmetic on naive local datetimes."""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Annotated, Tuple, Union

from pydantic import AfterValidator

DateLike = Union[date, datetime]


def _clamp_day(year: int, month: int, day: int) -> int:
    return min(day, calendar.monthrange(year, month)[1])


def add_months(value: DateLike, months: int) -> DateLike:
    """Shift by whole months, clamping the day to the target month's length."""
    index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    return value.replace(year=year, month=month, day=_clamp_day(year, month, value.day))


def add_years(value: DateLike, years: int) -> DateLike:
    """Shift by whole years; Feb 29 lands on Feb 28 in non-leap years."""
    return add_months(value, years * 12)


def start_of_day(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.min)


def day_bounds(value: DateLike) -> Tuple[datetime, datetime]:
    """Return [start, next day start) for the calendar day containing value."""
    start = start_of_day(value)
    return start, start + timedelta(days=1)


def days_between(earlier: DateLike, later: DateLike) -> int:
    """Whole days elapsed from earlier to later (negative if reversed)."""
    delta = later - earlier
    return delta.days if delta >= timedelta(0) else -((-delta).days)


def whole_years_between(earlier: DateLike, later: DateLike) -> int:
    """Completed calendar years from earlier to later."""
    years = later.year - earlier.year
    if years > 0 and add_years(earlier, years) > later:
        years -= 1
    return max(years, 0)


def as_local_naive(value: datetime) -> datetime:
    """Convert an aware value to local wall time and drop its offset."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


# Entity timestamps are stored without an offset
LocalDatetime = Annotated[datetime, AfterValidator(as_local_naive)]
