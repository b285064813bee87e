"""Unit tests for schedule materialization - pure functions, no mocks needed."""

import pytest
from datetime import date, time

from materna.core.errors import InvalidRule
from materna.core.models import CalendarEntry, EventDetails, RecurrenceRule
from materna.core.recurrence import expand
from materna.core.schedule import (
    MAX_OCCURRENCES,
    agenda_window,
    entries_on,
    materialize,
    next_entries,
    upcoming_window,
)


OWNER = "owner123"


@pytest.fixture
def details():
    return EventDetails(
        title="Prenatal vitamins",
        description="With breakfast",
        scheduled_time=time(8, 30),
        category="medical",
    )


def make_entry(on_date: date, at: time, title: str = "Entry") -> CalendarEntry:
    return CalendarEntry(owner_id=OWNER, title=title, occurrence_date=on_date, scheduled_time=at)


class TestMaterialize:
    """Tests for materialize."""

    def test_single_entry(self, details):
        """Without a rule a single standalone entry is built."""
        entries = materialize(OWNER, details, on_date=date(2024, 3, 1))

        assert len(entries) == 1
        entry = entries[0]
        assert entry.occurrence_date == date(2024, 3, 1)
        assert entry.is_recurring is False
        assert entry.is_completed is False
        assert entry.title == "Prenatal vitamins"
        assert entry.owner_id == OWNER

    def test_one_entry_per_occurrence(self, details):
        """A rule yields one entry per expanded date, sharing the metadata."""
        rule = RecurrenceRule(start_date=date(2024, 1, 1), unit="weekly", end_date=date(2024, 2, 1))
        entries = materialize(OWNER, details, rule=rule)

        assert [e.occurrence_date for e in entries] == expand(rule.start_date, "weekly", rule.end_date)
        assert {e.title for e in entries} == {"Prenatal vitamins"}
        assert {e.category for e in entries} == {"medical"}
        assert {e.scheduled_time for e in entries} == {time(8, 30)}
        assert all(e.is_recurring for e in entries)
        assert len({e.id for e in entries}) == len(entries)

    def test_monthly_clamped_dates(self, details):
        """Monthly rules starting on the 31st follow the clamping policy."""
        rule = RecurrenceRule(start_date=date(2024, 1, 31), unit="monthly", end_date=date(2024, 4, 30))
        dates = [e.occurrence_date for e in materialize(OWNER, details, rule=rule)]
        assert dates == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)]

    def test_end_before_start(self, details):
        """An inverted rule is rejected instead of producing nothing."""
        rule = RecurrenceRule(start_date=date(2024, 2, 1), unit="daily", end_date=date(2024, 1, 1))
        with pytest.raises(InvalidRule):
            materialize(OWNER, details, rule=rule)

    def test_missing_date(self, details):
        """A single event needs a date."""
        with pytest.raises(InvalidRule):
            materialize(OWNER, details)

    def test_too_many_occurrences(self, details):
        """Rules producing more entries than one batch allows are rejected."""
        rule = RecurrenceRule(start_date=date(2024, 1, 1), unit="daily", end_date=date(2026, 1, 1))
        assert len(expand(rule.start_date, "daily", rule.end_date)) > MAX_OCCURRENCES
        with pytest.raises(InvalidRule):
            materialize(OWNER, details, rule=rule)


class TestWindows:
    """Tests for upcoming_window and agenda_window."""

    def test_upcoming_window(self):
        """Upcoming spans today through seven days ahead."""
        assert upcoming_window(date(2024, 1, 1)) == (date(2024, 1, 1), date(2024, 1, 8))

    def test_upcoming_window_negative_days(self):
        """Negative spans collapse to today."""
        assert upcoming_window(date(2024, 1, 1), -3) == (date(2024, 1, 1), date(2024, 1, 1))

    def test_agenda_window(self):
        """Agenda spans this month and the next two."""
        assert agenda_window(date(2024, 11, 15)) == (date(2024, 11, 1), date(2025, 1, 31))

    def test_agenda_window_short_month(self):
        """The window ends on the real last day of the final month."""
        assert agenda_window(date(2024, 12, 31)) == (date(2024, 12, 1), date(2025, 2, 28))


    def test_upcoming_window_end_of_calendar(self):
        """The upcoming end is clamped to the last representable date."""
        assert upcoming_window(date(9999, 12, 30)) == (date(9999, 12, 30), date.max)

    def test_agenda_window_end_of_calendar(self):
        """The agenda end is clamped when the final month is past year 9999."""
        assert agenda_window(date(9999, 12, 15)) == (date(9999, 12, 1), date.max)
        assert agenda_window(date(9999, 10, 15)) == (date(9999, 10, 1), date(9999, 12, 31))

class TestFilters:
    """Tests for entries_on and next_entries."""

    def test_entries_on_sorted_by_time(self):
        """Only the requested day, earliest first."""
        entries = [
            make_entry(date(2024, 1, 2), time(15, 0), "Late"),
            make_entry(date(2024, 1, 1), time(9, 0), "Other day"),
            make_entry(date(2024, 1, 2), time(8, 0), "Early"),
        ]
        assert [e.title for e in entries_on(entries, date(2024, 1, 2))] == ["Early", "Late"]

    def test_next_entries(self):
        """Past entries are skipped and the result is capped."""
        entries = [make_entry(date(2024, 1, d), time(9, 0), f"Day {d}") for d in range(1, 11)]
        result = next_entries(entries, date(2024, 1, 4), limit=3)
        assert [e.title for e in result] == ["Day 4", "Day 5", "Day 6"]
