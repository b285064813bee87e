"""Schedule Materialization - Pure functions building calendar entries.

All functions are pure: same input always produces same output, no side effects.
Recurring events are expanded eagerly: one CalendarEntry per occurrence.
"""

import calendar
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from .errors import InvalidRule
from .models import CalendarEntry, EventDetails, RecurrenceRule
from .recurrence import expand_rule


UPCOMING_DAYS = 7
AGENDA_MONTHS_AHEAD = 2

# Upper bound on entries one event may produce; all of them are written in one batch
MAX_OCCURRENCES = 500


def _entry(owner_id: str, details: EventDetails, on_date: date, is_recurring: bool) -> CalendarEntry:
    return CalendarEntry(
        owner_id=owner_id,
        title=details.title,
        description=details.description,
        occurrence_date=on_date,
        scheduled_time=details.scheduled_time,
        category=details.category,
        is_recurring=is_recurring,
    )


def materialize(
    owner_id: str,
    details: EventDetails,
    rule: RecurrenceRule | None = None,
    on_date: date | None = None,
) -> list[CalendarEntry]:
    """Build the calendar entries for an event.

    With a rule, every expanded date gets its own entry. Without one, a single
    standalone entry is built for ``on_date``.

    Args:
        owner_id: Owner of the entries
        details: Title, description, time and category shared by all entries
        rule: Optional recurrence
        on_date: Date of a non-recurring entry

    Returns:
        Entries ordered by occurrence date

    Raises:
        InvalidRule: If the rule ends before it starts, yields too many
            occurrences, or no date is given
    """
    if rule is None:
        if on_date is None:
            raise InvalidRule("A date is required for a single event")
        return [_entry(owner_id, details, on_date, is_recurring=False)]

    if rule.end_date < rule.start_date:
        raise InvalidRule(
            f"Recurrence ends ({rule.end_date.isoformat()}) before it starts "
            f"({rule.start_date.isoformat()})"
        )

    dates = expand_rule(rule)
    if len(dates) > MAX_OCCURRENCES:
        raise InvalidRule(
            f"Recurrence produces {len(dates)} occurrences, the limit is {MAX_OCCURRENCES}"
        )

    return [_entry(owner_id, details, d, is_recurring=True) for d in dates]


def sort_entries(entries: list[CalendarEntry]) -> list[CalendarEntry]:
    """Order entries by (occurrence_date, scheduled_time)."""
    return sorted(entries, key=lambda e: (e.occurrence_date, e.scheduled_time))


def entries_on(entries: list[CalendarEntry], day: date) -> list[CalendarEntry]:
    """Entries falling on a given day, in time order."""
    return sort_entries([e for e in entries if e.occurrence_date == day])


def next_entries(entries: list[CalendarEntry], today: date, limit: int = 5) -> list[CalendarEntry]:
    """The first ``limit`` entries on or after today."""
    return sort_entries([e for e in entries if e.occurrence_date >= today])[:limit]


def upcoming_window(today: date, days: int = UPCOMING_DAYS) -> tuple[date, date]:
    """Inclusive date range for the "next N days" view.

    The end is clamped to ``date.max`` at the end of the calendar.
    """
    try:
        end = today + timedelta(days=max(0, days))
    except OverflowError:
        end = date.max
    return today, end


def agenda_window(today: date, months_ahead: int = AGENDA_MONTHS_AHEAD) -> tuple[date, date]:
    """Inclusive range from the first of this month to the end of the month ``months_ahead`` later."""
    start = today.replace(day=1)
    try:
        last_month = start + relativedelta(months=months_ahead)
    except (OverflowError, ValueError):
        return start, date.max
    last_day = calendar.monthrange(last_month.year, last_month.month)[1]
    return start, last_month.replace(day=last_day)
