"""Core Data Models - Pydantic models for type safety.

All models are immutable value objects with no behavior beyond validation.
"""

from datetime import datetime, time
from datetime import date as DateType
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator
import uuid


RecurrenceUnit = Literal["daily", "weekly", "monthly"]

EntryCategory = Literal["mood", "weight", "photo", "medical", "appointment", "general"]


class GestationAnchor(BaseModel):
    """The stored last menstrual period date for one owner."""

    owner_id: str = Field(min_length=1)
    last_period_date: Optional[DateType] = Field(
        default=None, description="None until the owner sets it"
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_configured(self) -> bool:
        return self.last_period_date is not None


class GestationSnapshot(BaseModel):
    """Gestational facts derived from an anchor date and the current day."""

    last_period_date: DateType
    week: int = Field(ge=1)
    days_into_week: int = Field(ge=0, le=6)
    trimester: int = Field(ge=1, le=3)
    due_date: DateType
    days_remaining: int = Field(ge=0)
    progress_percent: int = Field(ge=0, le=100)
    is_overdue: bool
    days_past_due: int = Field(ge=0)


class Countdown(BaseModel):
    """Time left until the due date, clamped at zero."""

    days: int = Field(ge=0)
    hours: int = Field(ge=0, le=23)
    minutes: int = Field(ge=0, le=59)


class RecurrenceRule(BaseModel):
    """Fixed-interval repetition bounded by an inclusive end date.

    Ordering of start and end is not enforced here; the expander returns
    nothing for an inverted rule and the materializer rejects it.
    """

    start_date: DateType
    unit: RecurrenceUnit
    end_date: DateType


class EventDetails(BaseModel):
    """Metadata copied onto every occurrence of a scheduled event."""

    title: str = Field(min_length=1, description="Short label shown in the agenda")
    description: Optional[str] = Field(default=None)
    scheduled_time: time = Field(default=time(9, 0), description="Local time of day, no timezone")
    category: EntryCategory = "appointment"

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value


class CalendarEntry(BaseModel):
    """One dated agenda item."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    owner_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: Optional[str] = None
    occurrence_date: DateType
    scheduled_time: time
    category: EntryCategory = "appointment"
    is_completed: bool = False
    is_recurring: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Owner(BaseModel):
    """Owner record stored in Firestore."""

    email: str
    api_key_hash: str = Field(description="SHA256 hash of API key - never store plaintext")
    created_at: datetime = Field(default_factory=datetime.utcnow)
