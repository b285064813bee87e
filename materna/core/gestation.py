"""Gestation Calculations - Pure functions for pregnancy timeline math.

All functions are pure: same input always produces same output, no side effects.
Every calculation works on calendar dates (no time of day, no timezone).
"""

import math
from datetime import date, datetime, time, timedelta

from .models import Countdown, GestationSnapshot


PREGNANCY_DAYS = 280
PREGNANCY_WEEKS = 40

FIRST_TRIMESTER_LAST_WEEK = 13
SECOND_TRIMESTER_LAST_WEEK = 27


def parse_ymd(value: str | date | None) -> date | None:
    """Build a calendar date from a ``YYYY-MM-DD`` value.

    The year, month and day components are read directly so the result never
    shifts across midnight the way timestamp parsing with an implicit
    timezone can. Anything after the day component (e.g. ``T00:00:00``) is
    ignored.

    Args:
        value: Date string, date, or None

    Returns:
        The date, or None if the value is blank or not a valid date
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    try:
        year, month, day = text[:10].split("-")
        return date(int(year), int(month), int(day))
    except (ValueError, TypeError):
        return None


def _as_day(now: date | datetime) -> date:
    # datetime is a subclass of date, check it first
    if isinstance(now, datetime):
        return now.date()
    return now


def due_date_for(last_period_date: date) -> date:
    """Estimated due date: 40 weeks after the last menstrual period.

    Clamped to ``date.max`` for anchors too close to the end of the calendar.
    """
    try:
        return last_period_date + timedelta(days=PREGNANCY_DAYS)
    except OverflowError:
        return date.max


def trimester_for_week(week: int) -> int:
    """Map a gestational week to its trimester (1, 2 or 3)."""
    if week <= FIRST_TRIMESTER_LAST_WEEK:
        return 1
    if week <= SECOND_TRIMESTER_LAST_WEEK:
        return 2
    return 3


def progress_for_week(week: int) -> int:
    """Percentage of a 40 week pregnancy reached, rounded half up, capped at 100."""
    return min(100, math.floor(week / PREGNANCY_WEEKS * 100 + 0.5))


def calculate(
    last_period_date: date | None, now: date | datetime
) -> GestationSnapshot | None:
    """Derive the gestation snapshot for a given day.

    Args:
        last_period_date: The owner's anchor date, or None if not configured
        now: Current date or datetime (only the calendar date is used)

    Returns:
        GestationSnapshot, or None when no anchor date is set
    """
    if last_period_date is None:
        return None

    today = _as_day(now)
    elapsed_days = (today - last_period_date).days

    week = max(1, elapsed_days // 7 + 1)
    due_date = due_date_for(last_period_date)
    days_remaining = max(0, (due_date - today).days)

    return GestationSnapshot(
        last_period_date=last_period_date,
        week=week,
        days_into_week=elapsed_days % 7 if elapsed_days >= 0 else 0,
        trimester=trimester_for_week(week),
        due_date=due_date,
        days_remaining=days_remaining,
        progress_percent=progress_for_week(week),
        is_overdue=today > due_date,
        days_past_due=max(0, (today - due_date).days),
    )


def countdown(due_date: date, now: date | datetime) -> Countdown:
    """Days, hours and minutes left until the start of the due date.

    Timezone information on ``now`` is dropped; the value is read as local
    wall-clock time. Elapsed due dates give an all-zero countdown.

    Args:
        due_date: Estimated due date
        now: Current date or datetime

    Returns:
        Countdown with non-negative components
    """
    if isinstance(now, datetime):
        current = now.replace(tzinfo=None)
    else:
        current = datetime.combine(now, time.min)

    delta = datetime.combine(due_date, time.min) - current
    if delta <= timedelta(0):
        return Countdown(days=0, hours=0, minutes=0)

    total_minutes = int(delta.total_seconds() // 60)
    return Countdown(
        days=total_minutes // (24 * 60),
        hours=(total_minutes // 60) % 24,
        minutes=total_minutes % 60,
    )
