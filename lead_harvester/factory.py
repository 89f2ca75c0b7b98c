"""Factory helpers for wiring stores, registries and the pipeline from settings."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .config import Settings
from .dnc import DNCRegistry, empty_dnc_document
from .emails.crawler import WebsiteCrawler
from .emails.scoring import EmailScorer
from .events import EventLog, empty_log_document
from .leads import LeadRepository, empty_leads_document
from .orchestrator.service import LeadPipeline
from .pool import LeadPool, empty_pool_document
from .progress import ScrapeProgress, empty_progress_document
from .rate_limit import RateLimiter
from .search.dataforseo import DataForSEOClient
from .storage import JsonFileStore


@dataclass
class Registries:
    """The persistent collaborators shared by every command."""

    events: EventLog
    dnc: DNCRegistry
    pool: LeadPool
    leads: LeadRepository
    progress: ScrapeProgress


def build_registries(settings: Settings) -> Registries:
    events = EventLog(JsonFileStore(settings.document_path("logs"), empty_log_document))
    return Registries(
        events=events,
        dnc=DNCRegistry(JsonFileStore(settings.document_path("dnc"), empty_dnc_document), events=events),
        pool=LeadPool(JsonFileStore(settings.document_path("pool"), empty_pool_document)),
        leads=LeadRepository(JsonFileStore(settings.document_path("leads"), empty_leads_document)),
        progress=ScrapeProgress(JsonFileStore(settings.document_path("progress"), empty_progress_document)),
    )


def build_crawler(settings: Settings) -> WebsiteCrawler:
    return WebsiteCrawler(settings.crawler, scorer=EmailScorer(tracking_id_length=settings.tracking_id_length))


def build_search_client(settings: Settings) -> Optional[DataForSEOClient]:
    api = settings.dataforseo
    if not api.configured:
        return None
    return DataForSEOClient(
        api.login or "",
        api.password or "",
        rate_limiter=RateLimiter(api.calls_per_minute),
        location_code=api.location_code,
        language_code=api.language_code,
    )


def build_pipeline(settings: Settings, registries: Optional[Registries] = None) -> LeadPipeline:
    registries = registries or build_registries(settings)
    return LeadPipeline(
        leads=registries.leads,
        dnc=registries.dnc,
        pool=registries.pool,
        crawler=build_crawler(settings),
        search_client=build_search_client(settings),
        progress=registries.progress,
        events=registries.events,
        settings=settings.pipeline,
    )


__all__ = ["Registries", "build_crawler", "build_pipeline", "build_registries", "build_search_client"]
