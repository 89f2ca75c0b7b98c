"""Pipeline that turns search results into stored, deduplicated, enriched leads."""
from __future__ import annotations

import dataclasses
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from ..clock import Clock, utc_now_iso
from ..dedupe import LeadDeduplicator
from ..dnc import DNCRegistry
from ..events import EventLog
from ..jobs import (
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_RUNNING,
    EmailExtractionJob,
    EmailExtractionResult,
    InMemoryJobStore,
    Job,
    JobNotFoundError,
    JobRunner,
    JobStore,
    ScrapeJob,
    ScrapeTarget,
    new_job_id,
)
from ..leads import LeadNotFoundError, LeadRepository
from ..models import BusinessListing, CrawlResult
from ..pool import LeadPool
from ..progress import ScrapeProgress
from ..rate_limit import DelayPolicy, Sleeper
from ..search.dataforseo import BROAD_CATEGORIES

LOGGER = logging.getLogger(__name__)

MODE_CATEGORY = "category"
MODE_ALL_BUSINESSES = "all_businesses"
SCRAPE_MODES = (MODE_CATEGORY, MODE_ALL_BUSINESSES)


class SearchClientProtocol(Protocol):
    """Interface of the search API used to discover businesses."""

    def search_business_listings(
        self, location: str, category: str, min_rating: float = 0, limit: int = 100
    ) -> List[BusinessListing]:  # pragma: no cover - runtime protocol
        """Return businesses matching ``category`` near ``location``."""


class CrawlerProtocol(Protocol):
    def crawl(self, url: Optional[str]) -> CrawlResult:  # pragma: no cover - runtime protocol
        """Return the emails found on ``url``."""


@dataclass
class PipelineSettings:
    """Pacing and search limits for background jobs."""

    location_delay: float = 2.0
    category_delay: float = 1.0
    broad_location_delay: float = 3.0
    lead_delay: float = 1.0
    min_rating: float = 3.5
    limit_per_target: int = 50
    limit_per_category: int = 50
    broad_categories: Sequence[str] = BROAD_CATEGORIES


@dataclass
class ScrapeRequest:
    campaign_name: str
    targets: Sequence[ScrapeTarget]
    mode: str = MODE_CATEGORY
    category: Optional[str] = None
    city: Optional[str] = None
    postal_codes: Sequence[str] = field(default_factory=tuple)


class LeadPipeline:
    """Coordinates scrape and email extraction jobs over the shared stores."""

    def __init__(
        self,
        *,
        leads: LeadRepository,
        dnc: DNCRegistry,
        pool: LeadPool,
        crawler: CrawlerProtocol,
        search_client: Optional[SearchClientProtocol] = None,
        progress: Optional[ScrapeProgress] = None,
        events: Optional[EventLog] = None,
        job_store: Optional[JobStore] = None,
        runner: Optional[JobRunner] = None,
        settings: Optional[PipelineSettings] = None,
        sleep: Sleeper = time.sleep,
        clock: Clock = utc_now_iso,
    ) -> None:
        self.leads = leads
        self.dnc = dnc
        self.pool = pool
        self.crawler = crawler
        self.search_client = search_client
        self.progress = progress
        self.events = events or EventLog(clock=clock)
        self.jobs: JobStore = job_store or InMemoryJobStore()
        self.runner = runner or JobRunner()
        self.settings = settings or PipelineSettings()
        self.deduplicator = LeadDeduplicator(dnc, pool)
        self._sleep = sleep
        self._clock = clock

    # ------------------------------------------------------------------
    # Job lookup
    # ------------------------------------------------------------------
    def job_status(self, job_id: str) -> Job:
        job = self.jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def job_results(self, job_id: str) -> List[Any]:
        return list(self.job_status(job_id).results)

    def wait(self, job_id: str, timeout: Optional[float] = None) -> Job:
        """Block until the background job finishes and return its record."""

        self.runner.wait(job_id, timeout)
        return self.job_status(job_id)

    # ------------------------------------------------------------------
    # Scraping
    # ------------------------------------------------------------------
    def start_scrape(self, request: ScrapeRequest) -> str:
        if self.search_client is None:
            raise RuntimeError("No search client configured; DataForSEO credentials are required to scrape")
        if not request.targets:
            raise ValueError("No locations selected")
        if request.mode not in SCRAPE_MODES:
            raise ValueError(f"Unknown scrape mode '{request.mode}'. Expected one of {SCRAPE_MODES}")
        if request.mode == MODE_CATEGORY and not request.category:
            raise ValueError("A category is required in 'category' mode")

        job = ScrapeJob(
            id=new_job_id(),
            campaign_name=request.campaign_name,
            targets=list(request.targets),
            mode=request.mode,
            category=request.category,
            postal_codes=list(request.postal_codes),
            city=request.city,
            status=JOB_RUNNING,
            started_at=self._clock(),
        )
        self.jobs.put(job)
        self.runner.submit(job.id, self.run_scrape, job)
        return job.id

    def run_scrape(self, job: ScrapeJob) -> ScrapeJob:
        self.events.emit(
            "start",
            "workflow",
            f"Starting scraping job: {job.campaign_name}",
            jobId=job.id,
            mode=job.mode,
            targets=len(job.targets),
        )
        try:
            if job.mode == MODE_ALL_BUSINESSES:
                listings = self._scrape_all_businesses(job)
            else:
                listings = self._scrape_category(job)
            self._store_results(job, listings)
        except Exception as exc:
            LOGGER.exception("Scrape job %s failed", job.id)
            job.status = JOB_FAILED
            job.error = str(exc)
            job.completed_at = self._clock()
            self.events.emit("error", "workflow", f"Job failed: {exc}", jobId=job.id)
            self.events.record_job(job.to_dict())
            raise

        self.events.emit(
            "complete",
            "workflow",
            f"Job completed: {len(job.results)} leads saved",
            jobId=job.id,
            leadsCount=len(job.results),
            errorsCount=len(job.errors),
        )
        self.events.record_job(job.to_dict())
        return job

    def _scrape_category(self, job: ScrapeJob) -> List[BusinessListing]:
        delay = DelayPolicy(self.settings.location_delay)
        listings: List[BusinessListing] = []
        total = len(job.targets)
        for index, target in enumerate(job.targets):
            job.current_target = target.name
            job.progress = round(index / total * 100)
            listings.extend(
                self._search(job, target, job.category or "", self.settings.min_rating, self.settings.limit_per_target)
            )
            if index < total - 1:
                delay.pause(self._sleep)
        return listings

    def _scrape_all_businesses(self, job: ScrapeJob) -> List[BusinessListing]:
        category_delay = DelayPolicy(self.settings.category_delay)
        location_delay = DelayPolicy(self.settings.broad_location_delay)
        categories = list(self.settings.broad_categories)
        total = len(job.targets) * len(categories)
        completed = 0
        listings: List[BusinessListing] = []
        for index, target in enumerate(job.targets):
            job.current_target = target.name
            for category in categories:
                job.current_category = category
                job.progress = round(completed / total * 100) if total else 0
                listings.extend(
                    self._search(job, target, category, 0, self.settings.limit_per_category, tag_category=True)
                )
                completed += 1
                category_delay.pause(self._sleep)
            if index < len(job.targets) - 1:
                location_delay.pause(self._sleep)
        return listings

    def _search(
        self,
        job: ScrapeJob,
        target: ScrapeTarget,
        category: str,
        min_rating: float,
        limit: int,
        *,
        tag_category: bool = False,
    ) -> List[BusinessListing]:
        assert self.search_client is not None
        try:
            results = self.search_client.search_business_listings(
                target.location, category, min_rating=min_rating, limit=limit
            )
        except Exception as exc:
            job.errors.append({"target": target.name, "category": category, "error": str(exc)})
            self.events.emit(
                "error",
                "dataforseo",
                f"Error: {category} in {target.name}: {exc}",
                jobId=job.id,
                target=target.name,
                category=category,
                error=str(exc),
            )
            return []

        scraped_at = self._clock()
        tagged = [
            dataclasses.replace(
                listing,
                neighborhood=target.name,
                search_category=category if tag_category else listing.search_category,
                scraped_at=scraped_at,
            )
            for listing in results
        ]
        job.total_found += len(tagged)
        self.events.emit(
            "success",
            "dataforseo",
            f"Found {len(tagged)} in \"{category}\" - {target.name}",
            jobId=job.id,
            count=len(tagged),
        )
        return tagged

    def _store_results(self, job: ScrapeJob, listings: List[BusinessListing]) -> None:
        outcome, validation = self.deduplicator.prepare(listings)
        self.events.emit(
            "success",
            "deduplication",
            f"Removed {outcome.removed} duplicates, {len(outcome.unique)} unique leads",
            jobId=job.id,
            original=len(listings),
            unique=len(outcome.unique),
        )

        saved = []
        if validation.valid:
            saved = self.leads.add_leads(validation.valid, job.campaign_name, job.city, job.postal_codes)
            self.pool.track_leads(saved, job.campaign_name)
        self.pool.update_scrape_stats(
            scraped=len(listings),
            imported=len(saved),
            duplicates=outcome.removed + len(validation.duplicates),
        )
        if job.postal_codes and self.progress is not None:
            self.progress.record_job(job.postal_codes, job.campaign_name, len(outcome.unique))

        job.results = saved
        job.summary = {
            "scraped": len(listings),
            "jobDuplicates": outcome.removed,
            **validation.summary(),
            "saved": len(saved),
        }
        job.status = JOB_COMPLETED
        job.progress = 100
        job.completed_at = self._clock()

    # ------------------------------------------------------------------
    # Email extraction
    # ------------------------------------------------------------------
    def extract_single(self, url: Optional[str], lead_id: Optional[str] = None) -> CrawlResult:
        """Crawl one website; attach the best email to ``lead_id`` when given."""

        self.events.emit("info", "email-extract", f"Extracting email from: {url}")
        result = self.crawler.crawl(url)
        if lead_id and result.best_email and self.leads.get(lead_id) is not None:
            self.leads.attach_email(lead_id, result.best_email, [candidate.email for candidate in result.emails])
        self.events.emit(
            "success",
            "email-extract",
            f"Found {result.total_found} emails, best: {result.best_email or 'none'}",
        )
        return result

    def start_email_extraction(self, lead_ids: Sequence[str]) -> str:
        if not lead_ids:
            raise ValueError("No leads selected")
        job = EmailExtractionJob(
            id=new_job_id(),
            lead_ids=list(lead_ids),
            status=JOB_RUNNING,
            started_at=self._clock(),
        )
        self.jobs.put(job)
        self.events.emit(
            "start",
            "email-extract",
            f"Starting bulk email extraction: {job.total} leads",
            jobId=job.id,
        )
        self.runner.submit(job.id, self.run_email_extraction, job)
        return job.id

    def run_email_extraction(self, job: EmailExtractionJob) -> EmailExtractionJob:
        delay = DelayPolicy(self.settings.lead_delay)
        try:
            for lead_id in job.lead_ids:
                try:
                    crawled = self._extract_for_lead(job, lead_id)
                except Exception as exc:
                    LOGGER.exception("Email extraction failed for lead %s", lead_id)
                    job.failed += 1
                    job.results.append(EmailExtractionResult(lead_id=lead_id, status="failed", error=str(exc)))
                    self.events.emit("error", "email-extract", f"Failed for {lead_id}: {exc}", leadId=lead_id)
                    crawled = False
                job.processed += 1
                job.progress = round(job.processed / job.total * 100)
                if crawled:
                    delay.pause(self._sleep)
        except Exception as exc:
            LOGGER.exception("Email extraction job %s failed", job.id)
            job.status = JOB_FAILED
            job.error = str(exc)
            job.completed_at = self._clock()
            self.events.emit("error", "email-extract", f"Job failed: {exc}", jobId=job.id)
            self.events.record_job(job.to_dict())
            raise

        job.status = JOB_COMPLETED
        job.completed_at = self._clock()
        self.events.emit(
            "complete",
            "email-extract",
            f"Bulk extraction completed: {job.found} emails found from {job.total} leads",
            jobId=job.id,
            found=job.found,
            failed=job.failed,
        )
        self.events.record_job(job.to_dict())
        return job

    def _extract_for_lead(self, job: EmailExtractionJob, lead_id: str) -> bool:
        """Process one lead; returns ``True`` when its website was crawled."""

        lead = self.leads.get(lead_id)
        if lead is None:
            job.failed += 1
            job.results.append(EmailExtractionResult(lead_id=lead_id, status="failed", error="Lead not found"))
            return False
        if not lead.website:
            job.failed += 1
            job.results.append(
                EmailExtractionResult(lead_id=lead_id, status="failed", name=lead.name, error="No website")
            )
            return False
        if lead.email:
            job.skipped += 1
            job.results.append(
                EmailExtractionResult(lead_id=lead_id, status="skipped", name=lead.name, email=lead.email)
            )
            return False

        try:
            result = self.crawler.crawl(lead.website)
        except Exception as exc:
            job.failed += 1
            job.results.append(
                EmailExtractionResult(
                    lead_id=lead_id, status="failed", name=lead.name, website=lead.website, error=str(exc)
                )
            )
            self.events.emit("error", "email-extract", f"Failed for {lead.name}: {exc}", leadId=lead_id)
            return True

        all_emails = [candidate.email for candidate in result.emails]
        if result.best_email:
            try:
                self.leads.attach_email(lead_id, result.best_email, all_emails)
            except LeadNotFoundError:
                # Deleted while its website was being crawled.
                job.failed += 1
                job.results.append(
                    EmailExtractionResult(
                        lead_id=lead_id, status="failed", name=lead.name, website=lead.website, error="Lead not found"
                    )
                )
                return True
            job.found += 1
            job.results.append(
                EmailExtractionResult(
                    lead_id=lead_id,
                    status="found",
                    name=lead.name,
                    website=lead.website,
                    email=result.best_email,
                    all_emails=all_emails,
                    total_found=result.total_found,
                )
            )
            self.events.emit("success", "email-extract", f"Found email for {lead.name}: {result.best_email}")
        else:
            job.results.append(
                EmailExtractionResult(
                    lead_id=lead_id,
                    status="not_found",
                    name=lead.name,
                    website=lead.website,
                    total_found=result.total_found,
                    error="No email found",
                )
            )
        return True

    def job_summaries(self) -> List[Dict[str, Any]]:
        return [job.to_dict() for job in self.jobs.list()]


__all__ = [
    "CrawlerProtocol",
    "LeadPipeline",
    "MODE_ALL_BUSINESSES",
    "MODE_CATEGORY",
    "PipelineSettings",
    "ScrapeRequest",
    "SearchClientProtocol",
]
