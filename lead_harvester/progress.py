"""Track which postal codes have been scraped and how many leads each produced."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .clock import Clock, utc_now_iso
from .storage import Document, DocumentStore


def empty_progress_document() -> Document:
    return {"postalCodes": {}, "lastUpdated": None}


@dataclass
class PostalCodeProgress:
    code: str
    status: str = "pending"
    leads_count: int = 0
    last_scraped: Optional[str] = None
    campaigns: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": self.status,
            "leadsCount": self.leads_count,
            "lastScraped": self.last_scraped,
            "campaigns": list(self.campaigns),
        }

    @classmethod
    def from_dict(cls, code: str, data: Dict[str, object]) -> "PostalCodeProgress":
        return cls(
            code=code,
            status=str(data.get("status") or "pending"),
            leads_count=int(data.get("leadsCount") or 0),  # type: ignore[arg-type]
            last_scraped=data.get("lastScraped"),  # type: ignore[arg-type]
            campaigns=list(data.get("campaigns") or []),  # type: ignore[call-overload]
        )


class ScrapeProgress:
    """Per postal code progress, shared by all scrape jobs."""

    def __init__(self, store: DocumentStore, *, clock: Clock = utc_now_iso) -> None:
        self._store = store
        self._clock = clock

    def _load(self) -> Document:
        document = self._store.load()
        if not isinstance(document.get("postalCodes"), dict):
            document["postalCodes"] = {}
        return document

    def record_job(self, postal_codes: Sequence[str], campaign_name: str, lead_count: int) -> List[PostalCodeProgress]:
        """Mark ``postal_codes`` complete.

        The job only knows its total, so each code is credited with an even
        share rounded up rather than the leads it actually produced.
        """

        if not postal_codes:
            return []
        share = math.ceil(lead_count / len(postal_codes))
        now = self._clock()
        document = self._load()
        updated: List[PostalCodeProgress] = []
        for code in postal_codes:
            data = document["postalCodes"].get(code) or {}
            progress = PostalCodeProgress.from_dict(code, data)
            progress.status = "complete"
            progress.leads_count += share
            progress.last_scraped = now
            if campaign_name not in progress.campaigns:
                progress.campaigns.append(campaign_name)
            document["postalCodes"][code] = progress.to_dict()
            updated.append(progress)
        document["lastUpdated"] = now
        self._store.save(document)
        return updated

    def get(self, code: str) -> Optional[PostalCodeProgress]:
        data = self._load()["postalCodes"].get(code)
        return PostalCodeProgress.from_dict(code, data) if data is not None else None

    def all(self) -> Dict[str, PostalCodeProgress]:
        return {code: PostalCodeProgress.from_dict(code, data) for code, data in self._load()["postalCodes"].items()}


__all__ = ["PostalCodeProgress", "ScrapeProgress", "empty_progress_document"]
