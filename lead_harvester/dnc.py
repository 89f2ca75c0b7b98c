"""Persistent "Do Not Call" registry keyed by canonical phone number."""
from __future__ import annotations

import logging
from typing import Dict, Optional

from .clock import Clock, utc_now_iso
from .events import EventLog
from .models import DNCEntry
from .phone import normalize_phone
from .storage import Document, DocumentStore

LOGGER = logging.getLogger(__name__)

DEFAULT_REASON = "Not interested"
DEFAULT_SOURCE = "manual"


def empty_dnc_document() -> Document:
    return {"phones": {}, "lastUpdated": None}


class DNCRegistry:
    """Blocked phone numbers with the reason and source of each block.

    Each mutating call loads the whole document and saves it back, so the
    registry never holds state of its own between calls.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        events: Optional[EventLog] = None,
        clock: Clock = utc_now_iso,
    ) -> None:
        self._store = store
        self._events = events
        self._clock = clock

    def _load(self) -> Document:
        document = self._store.load()
        if not isinstance(document.get("phones"), dict):
            document["phones"] = {}
        return document

    def _save(self, document: Document) -> None:
        document["lastUpdated"] = self._clock()
        self._store.save(document)

    def is_blocked(self, phone: Optional[str]) -> bool:
        key = normalize_phone(phone)
        if key is None:
            return False
        return key in self._load()["phones"]

    def get(self, phone: Optional[str]) -> Optional[DNCEntry]:
        key = normalize_phone(phone)
        if key is None:
            return None
        data = self._load()["phones"].get(key)
        return DNCEntry.from_dict(key, data) if data is not None else None

    def add(self, phone: Optional[str], reason: str = DEFAULT_REASON, source: str = DEFAULT_SOURCE) -> bool:
        """Block ``phone``; an existing entry is replaced without keeping history."""

        key = normalize_phone(phone)
        if key is None:
            LOGGER.debug("Refusing to add unparseable phone %r to the DNC list", phone)
            return False

        document = self._load()
        entry = DNCEntry(
            phone_key=key,
            original_phone=str(phone),
            reason=reason,
            source=source,
            added_at=self._clock(),
        )
        document["phones"][key] = entry.to_dict()
        self._save(document)
        if self._events is not None:
            self._events.emit("info", "dnc", f"Added {phone} to DNC list: {reason}", phone=key, source=source)
        return True

    def remove(self, phone: Optional[str]) -> bool:
        key = normalize_phone(phone)
        if key is None:
            return False
        document = self._load()
        if key not in document["phones"]:
            return False
        del document["phones"][key]
        self._save(document)
        if self._events is not None:
            self._events.emit("info", "dnc", f"Removed {phone} from DNC list", phone=key)
        return True

    def count(self) -> int:
        return len(self._load()["phones"])

    def entries(self) -> Dict[str, DNCEntry]:
        return {key: DNCEntry.from_dict(key, data) for key, data in self._load()["phones"].items()}

    def last_updated(self) -> Optional[str]:
        return self._load().get("lastUpdated")


__all__ = ["DNCRegistry", "DEFAULT_REASON", "DEFAULT_SOURCE", "empty_dnc_document"]
