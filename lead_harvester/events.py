"""Structured event records forwarded to :mod:`logging`.

Components describe what happened (type, node, message and a payload) and
leave formatting and routing to the logging configuration.  The log also keeps
bounded newest-first lists so a caller can show recent activity.
"""
from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Dict, List, Optional

from .clock import Clock, utc_now_iso
from .models import Event
from .storage import Document, DocumentStore

LOGGER = logging.getLogger(__name__)

EVENT_TYPES = ("info", "success", "warning", "error", "start", "complete")

_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "start": logging.INFO,
    "complete": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

MAX_EVENTS = 500
MAX_ERRORS = 200
MAX_JOBS = 100


def empty_log_document() -> Document:
    return {"events": [], "errors": [], "jobs": []}


class EventLog:
    """Collect events, mirror them to ``logging`` and optionally persist them."""

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        *,
        clock: Clock = utc_now_iso,
        max_events: int = MAX_EVENTS,
        max_errors: int = MAX_ERRORS,
        max_jobs: int = MAX_JOBS,
    ) -> None:
        self._store = store
        self._clock = clock
        self._max_events = max_events
        self._max_errors = max_errors
        self._max_jobs = max_jobs
        self._lock = threading.Lock()
        self._events: List[Event] = []
        self._errors: List[Event] = []
        self._jobs: List[Dict[str, Any]] = []
        if store is not None:
            self._restore(store.load())

    def _restore(self, document: Document) -> None:
        self._events = [Event.from_dict(item) for item in document.get("events") or []][: self._max_events]
        self._errors = [Event.from_dict(item) for item in document.get("errors") or []][: self._max_errors]
        self._jobs = list(document.get("jobs") or [])[: self._max_jobs]

    def emit(self, type: str, node: str, message: str, **data: Any) -> Event:
        if type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type '{type}'. Expected one of {EVENT_TYPES}")

        event = Event(
            id=uuid.uuid4().hex,
            timestamp=self._clock(),
            type=type,
            node=node,
            message=message,
            data=data,
        )
        LOGGER.log(_LEVELS[type], "[%s] %s", node, message, extra={"event_type": type, "event_data": data})

        with self._lock:
            self._events.insert(0, event)
            del self._events[self._max_events :]
            if type == "error":
                self._errors.insert(0, event)
                del self._errors[self._max_errors :]
            self._persist()
        return event

    def record_job(self, summary: Dict[str, Any]) -> None:
        """Keep a short summary of a finished or running job."""

        with self._lock:
            self._jobs.insert(0, dict(summary))
            del self._jobs[self._max_jobs :]
            self._persist()

    def events(self, limit: Optional[int] = None) -> List[Event]:
        with self._lock:
            return list(self._events[:limit])

    def errors(self) -> List[Event]:
        with self._lock:
            return list(self._errors)

    def jobs(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(job) for job in self._jobs]

    def clear_errors(self) -> None:
        with self._lock:
            self._errors = []
            self._persist()

    def _persist(self) -> None:
        if self._store is None:
            return
        self._store.save(
            {
                "events": [event.to_dict() for event in self._events],
                "errors": [event.to_dict() for event in self._errors],
                "jobs": list(self._jobs),
            }
        )


__all__ = ["EVENT_TYPES", "EventLog", "empty_log_document"]
