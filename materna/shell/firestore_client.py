"""Firestore Client - Persistence for gestation anchors and calendar entries.

This module handles all database I/O for the journal engine.
All I/O is contained here; business logic is in the core module.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from google.api_core.exceptions import AlreadyExists
from google.cloud import firestore
from pydantic import ValidationError

from ..core.errors import DuplicateAnchorRace, StoreUnavailable
from ..core.gestation import parse_ymd
from ..core.models import CalendarEntry, GestationAnchor


logger = logging.getLogger(__name__)

# Firestore rejects write batches larger than this
MAX_BATCH_WRITES = 500


@dataclass
class FirestoreConfig:
    """Configuration for Firestore client.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
    """

    project_id: str | None = None
    database: str | None = None


def encode_entry(entry: CalendarEntry) -> dict[str, Any]:
    """Convert an entry to a Firestore document.

    Dates are stored as YYYY-MM-DD and times as HH:MM so that range queries
    compare plain strings and never pick up a timezone.
    """
    data = entry.model_dump()
    data["occurrence_date"] = entry.occurrence_date.isoformat()
    data["scheduled_time"] = entry.scheduled_time.strftime("%H:%M")
    return data


def decode_entry(data: dict[str, Any]) -> CalendarEntry:
    """Build a CalendarEntry from a Firestore document.

    Raises:
        StoreUnavailable: If the document does not match the entry shape
    """
    try:
        return CalendarEntry(**data)
    except (ValidationError, TypeError) as e:
        raise StoreUnavailable(f"Malformed calendar entry: {e}") from e


def decode_anchor(owner_id: str, data: dict[str, Any]) -> GestationAnchor:
    """Build a GestationAnchor from a Firestore document.

    Raises:
        StoreUnavailable: If the stored date is not a valid YYYY-MM-DD value
    """
    raw = data.get("lmp_date")
    last_period_date = parse_ymd(raw)
    if raw not in (None, "") and last_period_date is None:
        raise StoreUnavailable(f"Malformed lmp_date for owner {owner_id[:8]}: {raw!r}")

    fields: dict[str, Any] = {"owner_id": owner_id, "last_period_date": last_period_date}
    for key in ("created_at", "updated_at"):
        if data.get(key) is not None:
            fields[key] = data[key]

    try:
        return GestationAnchor(**fields)
    except ValidationError as e:
        raise StoreUnavailable(f"Malformed anchor for owner {owner_id[:8]}: {e}") from e


@firestore.transactional
def _flip_completed(
    transaction: firestore.Transaction, ref: firestore.DocumentReference
) -> dict[str, Any] | None:
    snapshot = ref.get(transaction=transaction)
    if not snapshot.exists:
        return None
    data = snapshot.to_dict()
    data["is_completed"] = not data.get("is_completed", False)
    transaction.update(ref, {"is_completed": data["is_completed"]})
    return data


class JournalFirestoreClient:
    """Client for persisting gestation anchors and calendar entries to Firestore.

    Document structure per owner:
        owners/{owner_id}/
            profile/gestation: { owner_id, lmp_date, created_at, updated_at }
            calendar/{entry_id}: { title, occurrence_date, scheduled_time, ... }
    """

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        """Initialize Firestore client.

        Args:
            config: Firestore configuration
        """
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs: dict[str, Any] = {}
            if self.config.project_id:
                kwargs["project"] = self.config.project_id
            if self.config.database:
                kwargs["database"] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _owner_ref(self, owner_id: str) -> firestore.DocumentReference:
        return self.client.collection("owners").document(owner_id)

    def _anchor_ref(self, owner_id: str) -> firestore.DocumentReference:
        return self._owner_ref(owner_id).collection("profile").document("gestation")

    def _calendar_ref(self, owner_id: str) -> firestore.CollectionReference:
        return self._owner_ref(owner_id).collection("calendar")

    def _entry_ref(self, owner_id: str, entry_id: str) -> firestore.DocumentReference:
        return self._calendar_ref(owner_id).document(entry_id)

    # ==================== Anchor Operations ====================

    def _create_anchor(self, owner_id: str) -> None:
        """Create the owner's empty anchor document.

        Raises:
            DuplicateAnchorRace: If a concurrent writer created it first
        """
        now = datetime.utcnow()
        try:
            self._anchor_ref(owner_id).create({
                "owner_id": owner_id,
                "lmp_date": None,
                "created_at": now,
                "updated_at": now,
            })
        except AlreadyExists as e:
            raise DuplicateAnchorRace(owner_id) from e
        logger.info("Created empty anchor for owner: %s", owner_id[:8])

    def load_anchor(self, owner_id: str) -> GestationAnchor:
        """Fetch the owner's anchor, creating an empty one on first access.

        Args:
            owner_id: The owner's ID

        Returns:
            GestationAnchor; ``last_period_date`` is None when not configured

        Raises:
            StoreUnavailable: If Firestore fails or the document is malformed
        """
        logger.debug("Fetching anchor for owner: %s", owner_id[:8])
        try:
            ref = self._anchor_ref(owner_id)
            doc = ref.get()
            if not doc.exists:
                try:
                    self._create_anchor(owner_id)
                    return GestationAnchor(owner_id=owner_id)
                except DuplicateAnchorRace:
                    logger.debug("Anchor for %s created concurrently", owner_id[:8])
                doc = ref.get()
                if not doc.exists:
                    return GestationAnchor(owner_id=owner_id)
            data = doc.to_dict()
        except Exception as e:
            logger.error("Failed to fetch anchor: %s", str(e))
            raise StoreUnavailable("Could not load the last period date") from e

        return decode_anchor(owner_id, data)

    def save_anchor(self, owner_id: str, last_period_date: date) -> None:
        """Set or overwrite the owner's last menstrual period date.

        No plausibility checks are made here.

        Args:
            owner_id: The owner's ID
            last_period_date: The new anchor date

        Raises:
            StoreUnavailable: If Firestore fails
        """
        logger.info("Saving lmp_date for owner: %s", owner_id[:8])
        try:
            ref = self._anchor_ref(owner_id)
            if not ref.get().exists:
                try:
                    self._create_anchor(owner_id)
                except DuplicateAnchorRace:
                    logger.debug("Anchor for %s created concurrently", owner_id[:8])
            ref.set(
                {
                    "owner_id": owner_id,
                    "lmp_date": last_period_date.isoformat(),
                    "updated_at": datetime.utcnow(),
                },
                merge=True,
            )
        except Exception as e:
            logger.error("Failed to save lmp_date: %s", str(e))
            raise StoreUnavailable("Could not save the last period date") from e

    # ==================== Calendar Operations ====================

    def add_entries(self, owner_id: str, entries: list[CalendarEntry]) -> list[CalendarEntry]:
        """Persist entries in a single atomic batch.

        Either every entry is written or none is.

        Args:
            owner_id: The owner's ID
            entries: Entries to insert

        Returns:
            The entries written

        Raises:
            StoreUnavailable: If Firestore fails
            ValueError: If there are more entries than one batch accepts
        """
        if not entries:
            return []
        if len(entries) > MAX_BATCH_WRITES:
            raise ValueError(f"At most {MAX_BATCH_WRITES} entries can be written at once")

        logger.info("Adding %d calendar entries for owner: %s", len(entries), owner_id[:8])
        try:
            batch = self.client.batch()
            for entry in entries:
                batch.set(self._entry_ref(owner_id, entry.id), encode_entry(entry))
            batch.commit()
            return entries
        except Exception as e:
            logger.error("Failed to add calendar entries: %s", str(e))
            raise StoreUnavailable("Could not save the calendar entries") from e

    def get_entries_range(
        self, owner_id: str, start_date: date, end_date: date
    ) -> list[CalendarEntry]:
        """Fetch entries for a date range.

        Args:
            owner_id: The owner's ID
            start_date: Start of range (inclusive)
            end_date: End of range (inclusive)

        Returns:
            Entries ordered by (occurrence_date, scheduled_time)

        Raises:
            StoreUnavailable: If Firestore fails or a document is malformed
        """
        logger.debug(
            "Fetching entries for %s from %s to %s", owner_id[:8], start_date, end_date
        )
        try:
            query = (
                self._calendar_ref(owner_id)
                .where("occurrence_date", ">=", start_date.isoformat())
                .where("occurrence_date", "<=", end_date.isoformat())
                .order_by("occurrence_date")
                .order_by("scheduled_time")
            )
            documents = [doc.to_dict() for doc in query.stream()]
        except Exception as e:
            logger.error("Failed to fetch entries range: %s", str(e))
            raise StoreUnavailable("Could not load calendar entries") from e

        entries = [decode_entry(data) for data in documents]
        logger.debug("Found %d entries in range", len(entries))
        return entries

    def toggle_entry(self, owner_id: str, entry_id: str) -> CalendarEntry | None:
        """Flip an entry's completion flag.

        Args:
            owner_id: The owner's ID
            entry_id: ID of the entry

        Returns:
            The updated entry, or None if it does not exist

        Raises:
            StoreUnavailable: If Firestore fails
        """
        logger.info("Toggling entry %s for owner: %s", entry_id[:8], owner_id[:8])
        try:
            data = _flip_completed(self.client.transaction(), self._entry_ref(owner_id, entry_id))
        except Exception as e:
            logger.error("Failed to toggle entry: %s", str(e))
            raise StoreUnavailable("Could not update the calendar entry") from e

        if data is None:
            logger.warning("Entry not found: %s", entry_id)
            return None
        return decode_entry(data)

    def delete_entry(self, owner_id: str, entry_id: str) -> bool:
        """Delete a single calendar entry.

        Args:
            owner_id: The owner's ID
            entry_id: ID of the entry

        Returns:
            True if deleted, False if it did not exist

        Raises:
            StoreUnavailable: If Firestore fails
        """
        logger.info("Deleting entry %s for owner: %s", entry_id[:8], owner_id[:8])
        try:
            ref = self._entry_ref(owner_id, entry_id)
            if not ref.get().exists:
                logger.warning("Entry not found: %s", entry_id)
                return False
            ref.delete()
            return True
        except Exception as e:
            logger.error("Failed to delete entry: %s", str(e))
            raise StoreUnavailable("Could not delete the calendar entry") from e
