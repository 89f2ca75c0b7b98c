"""Data models shared by the deduplication, enrichment and job layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    """Return the first non-``None`` value stored under any of ``keys``."""

    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


# --- Registry entries ---

@dataclass(slots=True)
class DNCEntry:
    """A phone number that must not be contacted again."""

    phone_key: str
    original_phone: str
    reason: str
    source: str
    added_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalPhone": self.original_phone,
            "reason": self.reason,
            "source": self.source,
            "addedAt": self.added_at,
        }

    @classmethod
    def from_dict(cls, phone_key: str, data: Mapping[str, Any]) -> "DNCEntry":
        return cls(
            phone_key=phone_key,
            original_phone=str(data.get("originalPhone") or phone_key),
            reason=str(data.get("reason") or ""),
            source=str(data.get("source") or ""),
            added_at=str(data.get("addedAt") or ""),
        )


@dataclass(slots=True)
class PoolEntry:
    """First sighting of a phone number across all campaigns."""

    phone_key: str
    lead_id: Optional[str]
    campaign: Optional[str]
    first_seen_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "leadId": self.lead_id,
            "campaign": self.campaign,
            "firstSeenAt": self.first_seen_at,
        }

    @classmethod
    def from_dict(cls, phone_key: str, data: Mapping[str, Any]) -> "PoolEntry":
        return cls(
            phone_key=phone_key,
            lead_id=data.get("leadId"),
            campaign=data.get("campaign"),
            first_seen_at=str(data.get("firstSeenAt") or ""),
        )


@dataclass(slots=True)
class PoolStats:
    unique_phones: int = 0
    last_scrape: Optional[str] = None
    total_scraped: int = 0
    total_imported: int = 0
    total_duplicates: int = 0


# --- Inbound search results ---

@dataclass(slots=True)
class BusinessListing:
    """A business returned by the search API, before it becomes a lead."""

    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    reviews_count: Optional[int] = None
    category: Optional[str] = None
    id: Optional[str] = None
    place_id: Optional[str] = None
    is_claimed: Optional[bool] = None
    neighborhood: Optional[str] = None
    search_category: Optional[str] = None
    scraped_at: Optional[str] = None

    def display_name(self) -> str:
        return self.name or "(Unnamed Business)"

    def to_dict(self) -> Dict[str, Any]:
        return _compact(
            {
                "id": self.id,
                "name": self.name,
                "phone": self.phone,
                "website": self.website,
                "address": self.address,
                "rating": self.rating,
                "reviewsCount": self.reviews_count,
                "category": self.category,
                "placeId": self.place_id,
                "isClaimed": self.is_claimed,
                "neighborhood": self.neighborhood,
                "searchCategory": self.search_category,
                "scrapedAt": self.scraped_at,
            }
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BusinessListing":
        """Accept both the camelCase API shape and snake_case keys."""

        return cls(
            id=_first(data, "id"),
            name=_first(data, "name", "title"),
            phone=_first(data, "phone"),
            website=_first(data, "website", "url"),
            address=_first(data, "address"),
            rating=_first(data, "rating"),
            reviews_count=_first(data, "reviewsCount", "reviews_count"),
            category=_first(data, "category"),
            place_id=_first(data, "placeId", "place_id"),
            is_claimed=_first(data, "isClaimed", "is_claimed"),
            neighborhood=_first(data, "neighborhood"),
            search_category=_first(data, "searchCategory", "search_category"),
            scraped_at=_first(data, "scrapedAt", "scraped_at"),
        )


# --- Persisted leads and campaigns ---

@dataclass
class Lead:
    """A prospective business contact stored in a campaign."""

    id: str
    name: Optional[str]
    phone: Optional[str]
    campaign_id: str
    campaign_name: str
    imported_at: str
    status: str = "New"
    website: Optional[str] = None
    address: Optional[str] = None
    rating: Optional[float] = None
    reviews_count: Optional[int] = None
    category: Optional[str] = None
    search_category: Optional[str] = None
    neighborhood: Optional[str] = None
    email: Optional[str] = None
    all_emails: Optional[List[str]] = None
    email_extracted_at: Optional[str] = None
    notes: Optional[str] = None
    updated_at: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _KNOWN_KEYS = (
        "id",
        "name",
        "phone",
        "campaignId",
        "campaignName",
        "importedAt",
        "status",
        "website",
        "address",
        "rating",
        "reviewsCount",
        "category",
        "searchCategory",
        "neighborhood",
        "email",
        "allEmails",
        "emailExtractedAt",
        "notes",
        "updatedAt",
    )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update(
            _compact(
                {
                    "id": self.id,
                    "name": self.name,
                    "phone": self.phone,
                    "website": self.website,
                    "address": self.address,
                    "rating": self.rating,
                    "reviewsCount": self.reviews_count,
                    "category": self.category,
                    "searchCategory": self.search_category,
                    "neighborhood": self.neighborhood,
                    "email": self.email,
                    "allEmails": self.all_emails,
                    "emailExtractedAt": self.email_extracted_at,
                    "notes": self.notes,
                    "updatedAt": self.updated_at,
                }
            )
        )
        data.update(
            {
                "campaignId": self.campaign_id,
                "campaignName": self.campaign_name,
                "importedAt": self.imported_at,
                "status": self.status,
            }
        )
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Lead":
        return cls(
            id=str(data["id"]),
            name=data.get("name"),
            phone=data.get("phone"),
            campaign_id=str(data.get("campaignId") or ""),
            campaign_name=str(data.get("campaignName") or ""),
            imported_at=str(data.get("importedAt") or ""),
            status=str(data.get("status") or "New"),
            website=data.get("website"),
            address=data.get("address"),
            rating=data.get("rating"),
            reviews_count=data.get("reviewsCount"),
            category=data.get("category"),
            search_category=data.get("searchCategory"),
            neighborhood=data.get("neighborhood"),
            email=data.get("email"),
            all_emails=data.get("allEmails"),
            email_extracted_at=data.get("emailExtractedAt"),
            notes=data.get("notes"),
            updated_at=data.get("updatedAt"),
            extra={key: value for key, value in data.items() if key not in cls._KNOWN_KEYS},
        )


@dataclass
class Campaign:
    """Named grouping of leads collected together."""

    id: str
    name: str
    created_at: str
    city: Optional[str] = None
    postal_codes: List[str] = field(default_factory=list)
    leads_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "city": self.city,
            "postalCodes": list(self.postal_codes),
            "createdAt": self.created_at,
            "leadsCount": self.leads_count,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Campaign":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            created_at=str(data.get("createdAt") or ""),
            city=data.get("city"),
            postal_codes=list(data.get("postalCodes") or []),
            leads_count=int(data.get("leadsCount") or 0),
        )


# --- Email enrichment ---

@dataclass(slots=True)
class EmailCandidate:
    email: str
    score: int

    def to_dict(self) -> Dict[str, Any]:
        return {"email": self.email, "score": self.score}


@dataclass
class CrawlResult:
    """Outcome of crawling one website for contact emails."""

    emails: List[EmailCandidate] = field(default_factory=list)
    best_email: Optional[str] = None
    total_found: int = 0
    errors: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "emails": [candidate.to_dict() for candidate in self.emails],
            "bestEmail": self.best_email,
            "totalFound": self.total_found,
            "errors": list(self.errors) if self.errors is not None else None,
        }


# --- Batch validation ---

DNC_REASON = "Phone is on DNC list"


@dataclass(slots=True)
class RejectedLead:
    lead: BusinessListing
    reasons: List[str] = field(default_factory=list)

    @property
    def reason(self) -> str:
        return "; ".join(self.reasons)


@dataclass(slots=True)
class DuplicateLead:
    lead: BusinessListing
    existing_campaign: Optional[str] = None
    in_batch: bool = False


@dataclass
class BatchValidation:
    """Result of checking a scraped batch against the DNC list and lead pool."""

    valid: List[BusinessListing] = field(default_factory=list)
    invalid: List[RejectedLead] = field(default_factory=list)
    duplicates: List[DuplicateLead] = field(default_factory=list)

    @property
    def blocked(self) -> List[RejectedLead]:
        return [rejected for rejected in self.invalid if DNC_REASON in rejected.reasons]

    def summary(self) -> Dict[str, int]:
        return {
            "total": len(self.valid) + len(self.invalid) + len(self.duplicates),
            "valid": len(self.valid),
            "invalid": len(self.invalid),
            "duplicates": len(self.duplicates),
            "blocked": len(self.blocked),
        }


@dataclass
class DedupeOutcome:
    unique: List[BusinessListing] = field(default_factory=list)
    removed: int = 0


# --- Observability ---

@dataclass(slots=True)
class Event:
    """Discrete event record handed to the logging collaborator."""

    id: str
    timestamp: str
    type: str
    node: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type,
            "node": self.node,
            "message": self.message,
            "data": dict(self.data),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Event":
        return cls(
            id=str(data.get("id") or ""),
            timestamp=str(data.get("timestamp") or ""),
            type=str(data.get("type") or "info"),
            node=str(data.get("node") or ""),
            message=str(data.get("message") or ""),
            data=dict(data.get("data") or {}),
        )
