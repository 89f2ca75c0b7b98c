"""Top-level package for the lead harvesting toolkit."""

from . import emails, ingestion, models, orchestrator, search  # noqa: F401
from .dedupe import LeadDeduplicator, dedupe_job_results  # noqa: F401
from .dnc import DNCRegistry  # noqa: F401
from .emails import EmailScorer, WebsiteCrawler, extract_emails  # noqa: F401
from .events import EventLog  # noqa: F401
from .leads import LeadNotFoundError, LeadRepository  # noqa: F401
from .models import (  # noqa: F401
    BatchValidation,
    BusinessListing,
    Campaign,
    CrawlResult,
    DNCEntry,
    EmailCandidate,
    Lead,
    PoolEntry,
)
from .phone import is_valid_phone_key, normalize_phone  # noqa: F401
from .pool import LeadPool  # noqa: F401
from .storage import InMemoryStore, JsonFileStore  # noqa: F401

__all__ = [
    "BatchValidation",
    "BusinessListing",
    "Campaign",
    "CrawlResult",
    "DNCEntry",
    "DNCRegistry",
    "EmailCandidate",
    "EmailScorer",
    "EventLog",
    "InMemoryStore",
    "JsonFileStore",
    "Lead",
    "LeadDeduplicator",
    "LeadNotFoundError",
    "LeadPool",
    "LeadRepository",
    "PoolEntry",
    "WebsiteCrawler",
    "dedupe_job_results",
    "extract_emails",
    "is_valid_phone_key",
    "normalize_phone",
    "emails",
    "ingestion",
    "orchestrator",
    "search",
]
