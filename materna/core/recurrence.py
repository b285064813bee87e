"""Recurrence Expansion - Pure functions turning a rule into concrete dates.

All functions are pure: same input always produces same output, no side effects.
"""

from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from .errors import InvalidRule
from .gestation import parse_ymd
from .models import RecurrenceRule


RECURRENCE_UNITS = ("daily", "weekly", "monthly")


def occurrence(start_date: date, unit: str, index: int) -> date:
    """Date of the ``index``-th occurrence (0 is the start date).

    Monthly occurrences are offset from the start date itself, not chained
    from the previous occurrence. relativedelta clamps to the last day of
    the target month, so a rule starting on the 31st lands on the 31st in
    every month that has one and on the month's last day otherwise.

    Raises:
        InvalidRule: If the unit is not daily, weekly or monthly
        OverflowError, ValueError: If the date runs past ``date.max``
    """
    if unit == "daily":
        return start_date + timedelta(days=index)
    if unit == "weekly":
        return start_date + timedelta(weeks=index)
    if unit == "monthly":
        return start_date + relativedelta(months=index)
    raise InvalidRule(f"Unknown recurrence unit: {unit!r}")


def expand(start_date: date, unit: str, end_date: date) -> list[date]:
    """Expand a recurrence into its ordered occurrence dates.

    Args:
        start_date: First occurrence
        unit: "daily", "weekly" or "monthly"
        end_date: Inclusive upper bound

    Returns:
        Strictly ascending list of dates, empty if start_date > end_date

    Raises:
        InvalidRule: If the unit is unknown
    """
    if unit not in RECURRENCE_UNITS:
        raise InvalidRule(f"Unknown recurrence unit: {unit!r}")

    dates: list[date] = []
    index = 0
    current = start_date
    while current <= end_date:
        dates.append(current)
        index += 1
        try:
            current = occurrence(start_date, unit, index)
        except (OverflowError, ValueError):
            break

    return dates


def expand_rule(rule: RecurrenceRule) -> list[date]:
    """Expand a RecurrenceRule. See expand()."""
    return expand(rule.start_date, rule.unit, rule.end_date)


def parse_rule(start: str | date | None, unit: str, end: str | date | None) -> RecurrenceRule:
    """Build a RecurrenceRule from ``YYYY-MM-DD`` inputs.

    Raises:
        InvalidRule: If either date is missing or unparseable, the unit is
            unknown, or the end precedes the start
    """
    start_date = parse_ymd(start)
    if start_date is None:
        raise InvalidRule(f"Invalid start date: {start!r}")
    end_date = parse_ymd(end)
    if end_date is None:
        raise InvalidRule(f"Invalid end date: {end!r}")
    if unit not in RECURRENCE_UNITS:
        raise InvalidRule(f"Unknown recurrence unit: {unit!r}")
    if end_date < start_date:
        raise InvalidRule(
            f"Recurrence ends ({end_date.isoformat()}) before it starts ({start_date.isoformat()})"
        )
    return RecurrenceRule(start_date=start_date, unit=unit, end_date=end_date)
