"""Journal Service - Connects the pure core to the Firestore store.

Each method is one unit of work for one owner and returns a JSON-ready
dictionary. Failures come back as ``{"error": ...}`` instead of raising, so a
broken store never takes down the caller.
"""

import functools
import logging
from datetime import date, datetime, time
from typing import Any, Callable

from pydantic import ValidationError

from ..core.errors import InvalidRule, NotConfigured, StoreUnavailable
from ..core.gestation import calculate, countdown as time_left, parse_ymd
from ..core.models import CalendarEntry, EventDetails, GestationSnapshot
from ..core.recurrence import parse_rule
from ..core.schedule import agenda_window, materialize, next_entries, upcoming_window
from .firestore_client import JournalFirestoreClient


logger = logging.getLogger(__name__)

SETUP_PROMPT = "No last period date set yet. Use set_last_period_date to get started."

MAX_UPCOMING_DAYS = 366


def entry_payload(entry: CalendarEntry) -> dict[str, Any]:
    """Serialize an entry for tool output."""
    return {
        "id": entry.id,
        "title": entry.title,
        "description": entry.description,
        "date": entry.occurrence_date.isoformat(),
        "time": entry.scheduled_time.strftime("%H:%M"),
        "category": entry.category,
        "is_completed": entry.is_completed,
        "is_recurring": entry.is_recurring,
    }


def snapshot_payload(snapshot: GestationSnapshot) -> dict[str, Any]:
    return {"configured": True, **snapshot.model_dump(mode="json")}


def reports_errors(method: Callable[..., dict[str, Any]]) -> Callable[..., dict[str, Any]]:
    """Turn store and rule failures into an error payload."""

    @functools.wraps(method)
    def wrapper(*args: Any, **kwargs: Any) -> dict[str, Any]:
        try:
            return method(*args, **kwargs)
        except NotConfigured:
            return {"configured": False, "message": SETUP_PROMPT}
        except StoreUnavailable as e:
            logger.error("%s failed: %s", method.__name__, str(e))
            return {"error": f"{e} Please try again."}
        except InvalidRule as e:
            logger.warning("%s rejected: %s", method.__name__, str(e))
            return {"error": str(e)}

    return wrapper


class JournalService:
    """Gestation and agenda operations for the tool layer.

    Args:
        store: Persistence accessor, owned by the composition root
        clock: Returns the current local time; every call reads it afresh
    """

    def __init__(
        self,
        store: JournalFirestoreClient,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.clock = clock

    def _today(self) -> date:
        return self.clock().date()

    def _snapshot(self, owner_id: str) -> GestationSnapshot:
        anchor = self.store.load_anchor(owner_id)
        snapshot = calculate(anchor.last_period_date, self.clock())
        if snapshot is None:
            raise NotConfigured(owner_id)
        return snapshot

    # ==================== Gestation ====================

    @reports_errors
    def set_last_period_date(self, owner_id: str, date_str: str) -> dict[str, Any]:
        last_period_date = parse_ymd(date_str)
        if last_period_date is None:
            return {"error": "Invalid date format. Use YYYY-MM-DD."}
        if last_period_date > self._today():
            return {"error": "The last period date cannot be in the future."}

        self.store.save_anchor(owner_id, last_period_date)
        snapshot = calculate(last_period_date, self.clock())
        return {"saved": last_period_date.isoformat(), **snapshot_payload(snapshot)}

    @reports_errors
    def gestation(self, owner_id: str) -> dict[str, Any]:
        return snapshot_payload(self._snapshot(owner_id))

    @reports_errors
    def countdown(self, owner_id: str) -> dict[str, Any]:
        now = self.clock()
        snapshot = self._snapshot(owner_id)
        left = time_left(snapshot.due_date, now)
        return {
            "configured": True,
            "due_date": snapshot.due_date.isoformat(),
            "days": left.days,
            "hours": left.hours,
            "minutes": left.minutes,
            "week": snapshot.week,
            "days_into_week": snapshot.days_into_week,
            "is_overdue": snapshot.is_overdue,
            "days_past_due": snapshot.days_past_due,
        }

    # ==================== Agenda ====================

    @reports_errors
    def schedule_event(
        self,
        owner_id: str,
        title: str,
        date_str: str,
        scheduled_time: str = "09:00",
        category: str = "appointment",
        description: str | None = None,
        repeat: str | None = None,
        repeat_until: str | None = None,
    ) -> dict[str, Any]:
        on_date = parse_ymd(date_str)
        if on_date is None:
            raise InvalidRule("Invalid date format. Use YYYY-MM-DD.")

        try:
            at = time.fromisoformat(scheduled_time)
        except (TypeError, ValueError):
            return {"error": "Invalid time format. Use HH:MM."}
        if at.tzinfo is not None:
            return {"error": "Invalid time format. Use HH:MM."}

        try:
            details = EventDetails(
                title=title,
                description=description or None,
                scheduled_time=at.replace(second=0, microsecond=0),
                category=category,
            )
        except ValidationError as e:
            return {"error": f"Invalid event: {e.errors()[0]['msg']}"}

        rule = parse_rule(on_date, repeat, repeat_until) if repeat else None
        entries = materialize(owner_id, details, rule=rule, on_date=on_date)
        self.store.add_entries(owner_id, entries)

        return {
            "created": len(entries),
            "is_recurring": rule is not None,
            "dates": [e.occurrence_date.isoformat() for e in entries],
            "entry": entry_payload(entries[0]) if entries else None,
        }

    @reports_errors
    def upcoming(self, owner_id: str, days: int = 7) -> dict[str, Any]:
        start, end = upcoming_window(self._today(), min(days, MAX_UPCOMING_DAYS))
        entries = self.store.get_entries_range(owner_id, start, end)
        return {
            "from": start.isoformat(),
            "to": end.isoformat(),
            "entries": [entry_payload(e) for e in entries],
        }

    @reports_errors
    def agenda(self, owner_id: str) -> dict[str, Any]:
        today = self._today()
        start, end = agenda_window(today)
        entries = self.store.get_entries_range(owner_id, start, end)
        return {
            "from": start.isoformat(),
            "to": end.isoformat(),
            "entries": [entry_payload(e) for e in entries],
            "next": [entry_payload(e) for e in next_entries(entries, today)],
        }

    @reports_errors
    def day(self, owner_id: str, date_str: str) -> dict[str, Any]:
        day = parse_ymd(date_str)
        if day is None:
            return {"error": "Invalid date format. Use YYYY-MM-DD."}
        entries = self.store.get_entries_range(owner_id, day, day)
        return {"date": day.isoformat(), "entries": [entry_payload(e) for e in entries]}

    @reports_errors
    def toggle_entry(self, owner_id: str, entry_id: str) -> dict[str, Any]:
        entry = self.store.toggle_entry(owner_id, entry_id)
        if entry is None:
            return {"error": "Entry not found."}
        return {"entry": entry_payload(entry)}

    @reports_errors
    def delete_entry(self, owner_id: str, entry_id: str) -> dict[str, Any]:
        if not self.store.delete_entry(owner_id, entry_id):
            return {"error": "Entry not found."}
        return {"success": True}
