"""Authentication - API keys that identify journal owners.

The owner id is derived from the API key itself, so no plaintext key is
ever stored.
"""

import hashlib
import logging
import secrets
from datetime import datetime

from google.cloud import firestore

from ..core.models import Owner


logger = logging.getLogger(__name__)

API_KEY_PREFIX = "mtn_"
MIN_API_KEY_LENGTH = 40


def generate_api_key() -> str:
    """Generate a new random API key of the form ``mtn_<token>``."""
    return f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"


def owner_id_for_key(api_key: str) -> str:
    """Owner id for an API key: the first 32 hex chars of its SHA256 digest."""
    return hashlib.sha256(api_key.encode()).hexdigest()[:32]


def is_valid_key_format(api_key: str | None) -> bool:
    """Cheap shape check done before any database lookup."""
    return bool(api_key) and api_key.startswith(API_KEY_PREFIX) and len(api_key) >= MIN_API_KEY_LENGTH


class OwnerRegistry:
    """Registers owners and resolves API keys against Firestore."""

    def __init__(self, db: firestore.Client) -> None:
        self._db = db

    def _owner_ref(self, owner_id: str) -> firestore.DocumentReference:
        return self._db.collection("owners").document(owner_id)

    def register(self, email: str) -> tuple[str, str]:
        """Create an owner record and return ``(api_key, owner_id)``.

        The API key is only ever returned here.
        """
        api_key = generate_api_key()
        owner_id = owner_id_for_key(api_key)

        owner = Owner(email=email, api_key_hash=owner_id, created_at=datetime.utcnow())
        self._owner_ref(owner_id).set(owner.model_dump())

        logger.info("Registered owner: %s", owner_id[:8])
        return api_key, owner_id

    def exists(self, owner_id: str) -> bool:
        try:
            return self._owner_ref(owner_id).get().exists
        except Exception as e:
            logger.error("Error looking up owner %s: %s", owner_id[:8], str(e))
            return False

    def resolve(self, api_key: str | None) -> str | None:
        """Owner id for a valid, registered API key, otherwise None."""
        if not is_valid_key_format(api_key):
            logger.warning("Rejected API key with invalid format")
            return None

        owner_id = owner_id_for_key(api_key)
        if not self.exists(owner_id):
            logger.warning("API key not registered")
            return None
        return owner_id
