"""
Posting streaks.

A streak is a run of consecutive calendar days with at least one post. The
current streak is still alive if its last day is today or yesterday.
"""
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple, Union


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def posting_days(dates: Iterable[Union[date, datetime]]) -> List[date]:
    """Distinct posting days, oldest first."""
    return sorted({_as_date(d) for d in dates})


def compute_streaks(dates: Iterable[Union[date, datetime]], today: Optional[date] = None) -> Tuple[int, int]:
    """Return (current, longest) streak lengths in days."""
    days = posting_days(dates)
    if not days:
        return 0, 0

    today = _as_date(today or datetime.now())
    one_day = timedelta(days=1)

    longest = run = 1
    for previous, day in zip(days, days[1:]):
        run = run + 1 if day - previous == one_day else 1
        longest = max(longest, run)

    # Walk back from the newest day while days stay consecutive
    current = 0
    if today - days[-1] <= one_day:
        current = 1
        for index in range(len(days) - 1, 0, -1):
            if days[index] - days[index - 1] != one_day:
                break
            current += 1

    return current, longest
