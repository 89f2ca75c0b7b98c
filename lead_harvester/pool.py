"""Cross-campaign pool of every phone number imported so far."""
from __future__ import annotations

from typing import Dict, Iterable, Optional

from .clock import Clock, utc_now_iso
from .models import BusinessListing, Lead, PoolEntry, PoolStats
from .phone import normalize_phone
from .storage import Document, DocumentStore


def empty_pool_document() -> Document:
    return {
        "phones": {},
        "lastScrape": None,
        "totalScraped": 0,
        "totalImported": 0,
        "totalDuplicates": 0,
    }


class LeadPool:
    """Remember the first lead and campaign seen for each phone number."""

    def __init__(self, store: DocumentStore, *, clock: Clock = utc_now_iso) -> None:
        self._store = store
        self._clock = clock

    def _load(self) -> Document:
        document = self._store.load()
        if not isinstance(document.get("phones"), dict):
            document["phones"] = {}
        return document

    def exists(self, phone: Optional[str]) -> bool:
        key = normalize_phone(phone)
        if key is None:
            return False
        return key in self._load()["phones"]

    def get(self, phone: Optional[str]) -> Optional[PoolEntry]:
        key = normalize_phone(phone)
        if key is None:
            return None
        data = self._load()["phones"].get(key)
        return PoolEntry.from_dict(key, data) if data is not None else None

    def entries(self) -> Dict[str, PoolEntry]:
        return {key: PoolEntry.from_dict(key, data) for key, data in self._load()["phones"].items()}

    def track(self, phone: Optional[str], lead_id: Optional[str], campaign: Optional[str]) -> bool:
        """Record ``phone`` unless it is already known; returns ``True`` when inserted."""

        key = normalize_phone(phone)
        if key is None:
            return False
        document = self._load()
        if not self._insert(document, key, lead_id, campaign):
            return False
        self._store.save(document)
        return True

    def track_leads(self, leads: Iterable[Lead | BusinessListing], campaign: Optional[str]) -> int:
        """Track many leads with a single load/save cycle."""

        document = self._load()
        tracked = 0
        for lead in leads:
            key = normalize_phone(lead.phone)
            if key is None:
                continue
            if self._insert(document, key, lead.id, campaign):
                tracked += 1
        if tracked:
            self._store.save(document)
        return tracked

    def _insert(self, document: Document, key: str, lead_id: Optional[str], campaign: Optional[str]) -> bool:
        phones = document["phones"]
        if key in phones:
            return False
        phones[key] = PoolEntry(
            phone_key=key,
            lead_id=lead_id,
            campaign=campaign,
            first_seen_at=self._clock(),
        ).to_dict()
        return True

    def get_stats(self) -> PoolStats:
        document = self._load()
        return PoolStats(
            unique_phones=len(document["phones"]),
            last_scrape=document.get("lastScrape"),
            total_scraped=int(document.get("totalScraped") or 0),
            total_imported=int(document.get("totalImported") or 0),
            total_duplicates=int(document.get("totalDuplicates") or 0),
        )

    def update_scrape_stats(self, scraped: int, imported: int, duplicates: int) -> PoolStats:
        document = self._load()
        document["lastScrape"] = self._clock()
        document["totalScraped"] = int(document.get("totalScraped") or 0) + scraped
        document["totalImported"] = int(document.get("totalImported") or 0) + imported
        document["totalDuplicates"] = int(document.get("totalDuplicates") or 0) + duplicates
        self._store.save(document)
        return self.get_stats()


__all__ = ["LeadPool", "empty_pool_document"]
