"""Whole-document persistence used by the registries and repositories.

Every store follows the same contract: :meth:`load` returns the entire
document, callers mutate it, and :meth:`save` rewrites the entire document.
There is no partial update and no locking across processes, so two writers
racing on the same file keep whichever save happened last.  Saves go through
a temporary file that replaces the target, so a concurrent load sees either
the old or the new document.
"""
from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol

LOGGER = logging.getLogger(__name__)

Document = Dict[str, Any]
DocumentFactory = Callable[[], Document]


class DocumentStore(Protocol):
    """Port for loading and saving one JSON-serialisable document."""

    def load(self) -> Document:  # pragma: no cover - runtime protocol
        """Return the full document, or the default document when none exists."""

    def save(self, document: Document) -> None:  # pragma: no cover - runtime protocol
        """Replace the stored document."""


def _empty_document() -> Document:
    return {}


class JsonFileStore:
    """Store a document as pretty-printed JSON on disk."""

    def __init__(self, path: str | Path, default_factory: Optional[DocumentFactory] = None) -> None:
        self.path = Path(path)
        self._default_factory = default_factory or _empty_document
        self._lock = threading.Lock()

    def load(self) -> Document:
        try:
            with self._lock:
                if not self.path.exists():
                    return self._default_factory()
                text = self.path.read_text(encoding="utf-8")
            data = json.loads(text)
        except (OSError, ValueError) as exc:
            LOGGER.warning("Could not read %s (%s); starting from an empty document", self.path, exc)
            return self._default_factory()
        if not isinstance(data, dict):
            LOGGER.warning("Ignoring %s: expected a JSON object, found %s", self.path, type(data).__name__)
            return self._default_factory()
        merged = self._default_factory()
        merged.update(data)
        return merged

    def save(self, document: Document) -> None:
        payload = json.dumps(document, indent=2, ensure_ascii=False)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Readers only ever see the previous or the new file, never a truncated one.
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, self.path)
            except Exception:
                Path(tmp_name).unlink(missing_ok=True)
                raise

    def __repr__(self) -> str:
        return f"JsonFileStore({str(self.path)!r})"


class InMemoryStore:
    """Keep the document in memory; handy for tests and dry runs."""

    def __init__(self, initial: Optional[Document] = None, default_factory: Optional[DocumentFactory] = None) -> None:
        self._default_factory = default_factory or _empty_document
        self._document: Optional[Document] = copy.deepcopy(initial) if initial is not None else None
        self.saves = 0

    def load(self) -> Document:
        if self._document is None:
            return self._default_factory()
        merged = self._default_factory()
        merged.update(copy.deepcopy(self._document))
        return merged

    def save(self, document: Document) -> None:
        # Round-trip through JSON so non-serialisable values fail here as they would on disk.
        self._document = json.loads(json.dumps(document))
        self.saves += 1


__all__ = ["Document", "DocumentStore", "InMemoryStore", "JsonFileStore"]
