"""Unit tests for gestation calculations - pure functions, no mocks needed."""

import pytest
from datetime import date, datetime, timedelta, timezone

from materna.core.gestation import (
    calculate,
    countdown,
    due_date_for,
    parse_ymd,
    progress_for_week,
    trimester_for_week,
)


LMP = date(2024, 1, 1)


class TestParseYmd:
    """Tests for parse_ymd."""

    def test_plain_date_string(self):
        """YYYY-MM-DD is read component by component."""
        assert parse_ymd("2024-03-05") == date(2024, 3, 5)

    def test_ignores_time_and_offset(self):
        """A trailing time or offset never shifts the day."""
        assert parse_ymd("2024-03-05T23:30:00-03:00") == date(2024, 3, 5)

    def test_passes_dates_through(self):
        """Dates and datetimes are accepted as-is."""
        assert parse_ymd(date(2024, 3, 5)) == date(2024, 3, 5)
        assert parse_ymd(datetime(2024, 3, 5, 22, 0)) == date(2024, 3, 5)

    @pytest.mark.parametrize("value", [None, "", "   ", "garbage", "2024-02-30", "2024/03/05"])
    def test_invalid_values_return_none(self, value):
        """Blank or invalid input gives None instead of raising."""
        assert parse_ymd(value) is None


class TestTrimester:
    """Tests for trimester_for_week."""

    @pytest.mark.parametrize(
        "week,expected",
        [(1, 1), (13, 1), (14, 2), (27, 2), (28, 3), (40, 3), (45, 3)],
    )
    def test_boundaries(self, week, expected):
        """Weeks up to 13 are first, up to 27 second, the rest third."""
        assert trimester_for_week(week) == expected


class TestProgress:
    """Tests for progress_for_week."""

    def test_rounds_half_up(self):
        """Week 1 is 2.5% and rounds up to 3."""
        assert progress_for_week(1) == 3

    def test_caps_at_100(self):
        """Weeks past 40 stay at 100."""
        assert progress_for_week(40) == 100
        assert progress_for_week(43) == 100


class TestCalculate:
    """Tests for calculate."""

    def test_no_anchor(self):
        """An unset anchor yields None."""
        assert calculate(None, date(2024, 1, 8)) is None

    def test_reference_scenario(self):
        """One week after the anchor is week 2 with a 2024-10-07 due date."""
        snapshot = calculate(LMP, date(2024, 1, 8))

        assert snapshot.week == 2
        assert snapshot.days_into_week == 0
        assert snapshot.trimester == 1
        assert snapshot.due_date == date(2024, 10, 7)
        assert snapshot.days_remaining == (date(2024, 10, 7) - date(2024, 1, 8)).days
        assert snapshot.progress_percent == 5
        assert snapshot.is_overdue is False

    def test_same_day_is_week_one(self):
        """The anchor day itself is week 1, never week 0."""
        snapshot = calculate(LMP, LMP)
        assert snapshot.week == 1
        assert snapshot.days_remaining == 280

    def test_datetime_now_uses_calendar_date(self):
        """Late evening still counts as the same calendar day."""
        snapshot = calculate(LMP, datetime(2024, 1, 7, 23, 59))
        assert snapshot.week == 1
        assert snapshot.days_into_week == 6

    def test_due_date_independent_of_now(self):
        """Due date is anchor + 280 days whatever the current day."""
        for offset in (0, 50, 300):
            snapshot = calculate(LMP, LMP + timedelta(days=offset))
            assert snapshot.due_date == LMP + timedelta(days=280)

    def test_on_due_date(self):
        """On the due date nothing remains but it is not overdue yet."""
        snapshot = calculate(LMP, date(2024, 10, 7))
        assert snapshot.days_remaining == 0
        assert snapshot.is_overdue is False
        assert snapshot.progress_percent == 100

    def test_past_due_date(self):
        """After the due date values clamp instead of going negative."""
        snapshot = calculate(LMP, date(2024, 10, 17))
        assert snapshot.days_remaining == 0
        assert snapshot.progress_percent == 100
        assert snapshot.is_overdue is True
        assert snapshot.days_past_due == 10
        assert snapshot.trimester == 3

    def test_anchor_in_future(self):
        """A future anchor still produces a snapshot (week 1)."""
        snapshot = calculate(date(2024, 6, 1), date(2024, 1, 1))
        assert snapshot.week == 1
        assert snapshot.days_into_week == 0
        assert snapshot.days_remaining > 280

    def test_anchor_at_end_of_calendar(self):
        """Anchors near date.max do not raise."""
        snapshot = calculate(date(9999, 12, 1), date(2024, 1, 1))
        assert snapshot.due_date == date.max

    def test_week_never_below_one(self):
        """Week is at least 1 for every day from the anchor onwards."""
        for offset in range(0, 320, 3):
            assert calculate(LMP, LMP + timedelta(days=offset)).week >= 1

    def test_progress_monotonic(self):
        """Progress never decreases as time passes and saturates at 100."""
        values = [
            calculate(LMP, LMP + timedelta(days=offset)).progress_percent
            for offset in range(0, 320)
        ]
        assert values == sorted(values)
        assert values[-1] == 100

    def test_trimester_switches_at_week_14(self):
        """Day 91 is week 14, the first day of the second trimester."""
        assert calculate(LMP, LMP + timedelta(days=90)).trimester == 1
        assert calculate(LMP, LMP + timedelta(days=91)).trimester == 2


class TestDueDate:
    """Tests for due_date_for."""

    def test_leap_year(self):
        """280 days are counted on the real calendar."""
        assert due_date_for(date(2023, 6, 1)) == date(2024, 3, 7)

    def test_clamped_at_date_max(self):
        """Overflow is clamped instead of raised."""
        assert due_date_for(date.max) == date.max


class TestCountdown:
    """Tests for countdown."""

    def test_days_hours_minutes(self):
        """Countdown runs to midnight at the start of the due date."""
        left = countdown(date(2024, 10, 7), datetime(2024, 10, 5, 18, 30))
        assert (left.days, left.hours, left.minutes) == (1, 5, 30)

    def test_date_input(self):
        """A plain date counts from midnight."""
        left = countdown(date(2024, 10, 7), date(2024, 10, 5))
        assert (left.days, left.hours, left.minutes) == (2, 0, 0)

    def test_timezone_is_ignored(self):
        """Aware datetimes are read as wall-clock time."""
        aware = datetime(2024, 10, 5, 18, 30, tzinfo=timezone.utc)
        left = countdown(date(2024, 10, 7), aware)
        assert (left.days, left.hours, left.minutes) == (1, 5, 30)

    def test_elapsed_due_date(self):
        """Past due dates give zeros, never negatives."""
        left = countdown(date(2024, 10, 7), datetime(2024, 10, 9, 8, 0))
        assert (left.days, left.hours, left.minutes) == (0, 0, 0)
