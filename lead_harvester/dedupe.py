"""Split scraped batches into unique, duplicate and rejected leads."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set, Tuple

from .dnc import DNCRegistry
from .models import (
    DNC_REASON,
    BatchValidation,
    BusinessListing,
    DedupeOutcome,
    DuplicateLead,
    RejectedLead,
)
from .phone import is_valid_phone_key, normalize_phone
from .pool import LeadPool

LOGGER = logging.getLogger(__name__)

MISSING_NAME = "Missing company name"
MISSING_PHONE = "Missing phone number"
INVALID_PHONE = "Invalid phone number format"


def _name_address_key(listing: BusinessListing) -> Optional[Tuple[str, str]]:
    name = (listing.name or "").strip().lower()
    address = (listing.address or "").strip().lower()
    if not name and not address:
        return None
    return name, address


def dedupe_job_results(listings: Iterable[BusinessListing]) -> DedupeOutcome:
    """Remove repeats inside one scrape job; the first occurrence wins.

    Listings are matched on their phone key, and listings without a usable
    phone fall back to the lower-cased ``(name, address)`` pair.
    """

    unique: List[BusinessListing] = []
    seen_phones: Set[str] = set()
    seen_pairs: Set[Tuple[str, str]] = set()
    removed = 0

    for listing in listings:
        key = normalize_phone(listing.phone)
        if key is not None:
            if key in seen_phones:
                removed += 1
                continue
            seen_phones.add(key)
        else:
            pair = _name_address_key(listing)
            if pair is not None:
                if pair in seen_pairs:
                    removed += 1
                    continue
                seen_pairs.add(pair)
        unique.append(listing)

    if removed:
        LOGGER.debug("Removed %s repeated listings from job results", removed)
    return DedupeOutcome(unique=unique, removed=removed)


class LeadDeduplicator:
    """Check scraped listings against the DNC registry and the lead pool."""

    def __init__(self, dnc: DNCRegistry, pool: LeadPool) -> None:
        self._dnc = dnc
        self._pool = pool

    def validate_batch(self, listings: Iterable[BusinessListing]) -> BatchValidation:
        """Classify every listing as valid, duplicate or invalid.

        DNC membership is checked before duplication so a blocked number is
        always reported as invalid.  Numbers repeated inside the batch are
        duplicates of the first occurrence.
        """

        blocked = self._dnc.entries()
        known = self._pool.entries()
        batch_keys: Set[str] = set()
        result = BatchValidation()

        for listing in listings:
            reasons: List[str] = []
            if not (listing.name or "").strip():
                reasons.append(MISSING_NAME)
            if not (str(listing.phone).strip() if listing.phone is not None else ""):
                reasons.append(MISSING_PHONE)
            if reasons:
                result.invalid.append(RejectedLead(lead=listing, reasons=reasons))
                continue

            key = normalize_phone(listing.phone)
            if not is_valid_phone_key(key):
                result.invalid.append(RejectedLead(lead=listing, reasons=[INVALID_PHONE]))
                continue

            if key in blocked:
                result.invalid.append(RejectedLead(lead=listing, reasons=[DNC_REASON]))
                continue

            existing = known.get(key)
            if existing is not None:
                result.duplicates.append(DuplicateLead(lead=listing, existing_campaign=existing.campaign))
                continue

            if key in batch_keys:
                result.duplicates.append(DuplicateLead(lead=listing, in_batch=True))
                continue

            batch_keys.add(key)
            result.valid.append(listing)

        LOGGER.info(
            "Validated %s listings: %s valid, %s duplicates, %s invalid",
            result.summary()["total"],
            len(result.valid),
            len(result.duplicates),
            len(result.invalid),
        )
        return result

    def dedupe_job_results(self, listings: Iterable[BusinessListing]) -> DedupeOutcome:
        return dedupe_job_results(listings)

    def prepare(self, listings: Iterable[BusinessListing]) -> Tuple[DedupeOutcome, BatchValidation]:
        """Run the same-job pass followed by the DNC/pool pass."""

        outcome = dedupe_job_results(listings)
        return outcome, self.validate_batch(outcome.unique)


__all__ = [
    "INVALID_PHONE",
    "LeadDeduplicator",
    "MISSING_NAME",
    "MISSING_PHONE",
    "dedupe_job_results",
]
