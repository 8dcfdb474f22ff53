"""
Tests for posting streak computation.
"""
from datetime import date, datetime

import pytest

from reflect.streaks import compute_streaks, posting_days

TODAY = date(2026, 6, 15)


def days(*values):
    return [date(2026, 6, d) for d in values]


class TestStreaks:
    """Test current and longest streaks."""

    def test_no_posts(self):
        assert compute_streaks([], TODAY) == (0, 0)

    def test_multiple_posts_same_day_count_once(self):
        stamps = [datetime(2026, 6, 15, 8), datetime(2026, 6, 15, 20), datetime(2026, 6, 14, 9)]
        assert posting_days(stamps) == days(14, 15)
        assert compute_streaks(stamps, TODAY) == (2, 2)

    @pytest.mark.parametrize(
        "posted, expected",
        [
            (days(15), (1, 1)),
            (days(14), (1, 1)),
            (days(13), (0, 1)),
            (days(1, 2, 3, 4, 13, 14, 15), (3, 4)),
            (days(1, 2, 3, 4, 10, 11), (0, 4)),
            (days(10, 12, 14), (1, 1)),
        ],
    )
    def test_streaks(self, posted, expected):
        assert compute_streaks(posted, TODAY) == expected

    def test_streak_across_month_boundary(self):
        posted = [date(2026, 5, 30), date(2026, 5, 31), date(2026, 6, 1)]
        assert compute_streaks(posted, date(2026, 6, 1)) == (3, 3)

    def test_accepts_datetime_for_today(self):
        assert compute_streaks(days(14, 15), datetime(2026, 6, 16, 23, 0)) == (2, 2)
