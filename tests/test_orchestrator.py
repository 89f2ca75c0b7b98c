from typing import Dict, List, Optional

import pytest

from lead_harvester.dnc import DNCRegistry, empty_dnc_document
from lead_harvester.events import EventLog
from lead_harvester.jobs import JOB_COMPLETED, JOB_FAILED, JobNotFoundError, JobRunner, ScrapeTarget
from lead_harvester.leads import LeadRepository, empty_leads_document
from lead_harvester.models import BusinessListing, CrawlResult, EmailCandidate
from lead_harvester.orchestrator import LeadPipeline, PipelineSettings, ScrapeRequest
from lead_harvester.orchestrator.service import MODE_ALL_BUSINESSES
from lead_harvester.pool import LeadPool, empty_pool_document
from lead_harvester.progress import ScrapeProgress, empty_progress_document
from lead_harvester.storage import InMemoryStore


class FakeSearchClient:
    def __init__(self, results: Dict[str, List[BusinessListing]], failing: Optional[set] = None) -> None:
        self.results = results
        self.failing = failing or set()
        self.calls: List[tuple] = []

    def search_business_listings(self, location, category, min_rating=0, limit=100):
        self.calls.append((location, category, min_rating, limit))
        if location in self.failing:
            raise RuntimeError(f"quota exceeded for {location}")
        return list(self.results.get(location, []))


class FakeCrawler:
    def __init__(self, sites: Dict[str, List[str]], failing: Optional[set] = None) -> None:
        self.sites = sites
        self.failing = failing or set()
        self.crawled: List[str] = []

    def crawl(self, url):
        self.crawled.append(url)
        if url in self.failing:
            raise RuntimeError("connection reset")
        emails = self.sites.get(url, [])
        return CrawlResult(
            emails=[EmailCandidate(email, 100 - index) for index, email in enumerate(emails)],
            best_email=emails[0] if emails else None,
            total_found=len(emails),
        )


def _pipeline(search_client=None, crawler=None, settings=None):
    sleeps: List[float] = []
    dnc = DNCRegistry(InMemoryStore(default_factory=empty_dnc_document))
    pipeline = LeadPipeline(
        leads=LeadRepository(InMemoryStore(default_factory=empty_leads_document)),
        dnc=dnc,
        pool=LeadPool(InMemoryStore(default_factory=empty_pool_document)),
        crawler=crawler or FakeCrawler({}),
        search_client=search_client,
        progress=ScrapeProgress(InMemoryStore(default_factory=empty_progress_document)),
        events=EventLog(),
        runner=JobRunner(max_workers=2),
        settings=settings or PipelineSettings(),
        sleep=sleeps.append,
    )
    return pipeline, sleeps


TARGETS = [
    ScrapeTarget("Plateau", "Plateau-Mont-Royal, Montreal", "H2J"),
    ScrapeTarget("Verdun", "Verdun, Montreal", "H4G"),
]


def test_category_scrape_saves_unique_unblocked_leads() -> None:
    client = FakeSearchClient(
        {
            "Plateau-Mont-Royal, Montreal": [
                BusinessListing(name="Acme Bakery", phone="514-555-0001", website="acme.com"),
                BusinessListing(name="Blocked Bar", phone="514-555-0002"),
            ],
            "Verdun, Montreal": [
                BusinessListing(name="Acme Bakery", phone="(514) 555-0001"),
                BusinessListing(name="Verdun Deli", phone="514-555-0003"),
            ],
        }
    )
    pipeline, sleeps = _pipeline(client)
    pipeline.dnc.add("514-555-0002")

    job_id = pipeline.start_scrape(
        ScrapeRequest("Spring", TARGETS, category="bakery", city="Montreal", postal_codes=["H2J", "H4G"])
    )
    job = pipeline.wait(job_id, timeout=5)

    assert job.status == JOB_COMPLETED
    assert job.progress == 100
    assert job.total_found == 4
    assert [lead.name for lead in pipeline.job_results(job_id)] == ["Acme Bakery", "Verdun Deli"]
    assert job.summary["jobDuplicates"] == 1
    assert job.summary["blocked"] == 1
    assert job.summary["saved"] == 2
    assert [call[2] for call in client.calls] == [3.5, 3.5]
    assert sleeps == [2.0]

    stored = pipeline.leads.list_leads(campaign="Spring")
    assert {lead.neighborhood for lead in stored} == {"Plateau", "Verdun"}
    assert pipeline.pool.exists("5145550003")
    stats = pipeline.pool.get_stats()
    assert stats.total_scraped == 4
    assert stats.total_imported == 2
    assert stats.total_duplicates == 1
    assert pipeline.progress.get("H2J").leads_count == 2


def test_second_scrape_reports_pool_duplicates() -> None:
    client = FakeSearchClient({"Verdun, Montreal": [BusinessListing(name="Verdun Deli", phone="514-555-0003")]})
    pipeline, _ = _pipeline(client)
    request = ScrapeRequest("Spring", [TARGETS[1]], category="deli")

    pipeline.wait(pipeline.start_scrape(request), timeout=5)
    job = pipeline.wait(pipeline.start_scrape(request), timeout=5)

    assert job.summary["duplicates"] == 1
    assert job.results == []
    assert len(pipeline.leads.all()) == 1


def test_search_errors_are_recorded_and_scrape_continues() -> None:
    client = FakeSearchClient(
        {"Verdun, Montreal": [BusinessListing(name="Verdun Deli", phone="514-555-0003")]},
        failing={"Plateau-Mont-Royal, Montreal"},
    )
    pipeline, _ = _pipeline(client)

    job = pipeline.wait(pipeline.start_scrape(ScrapeRequest("Spring", TARGETS, category="deli")), timeout=5)

    assert job.status == JOB_COMPLETED
    assert job.errors == [
        {"target": "Plateau", "category": "deli", "error": "quota exceeded for Plateau-Mont-Royal, Montreal"}
    ]
    assert len(job.results) == 1
    assert pipeline.events.errors()[0].node == "dataforseo"


def test_all_businesses_mode_tags_search_category_and_paces_calls() -> None:
    client = FakeSearchClient({"Verdun, Montreal": [BusinessListing(name="Verdun Deli", phone="514-555-0003")]})
    settings = PipelineSettings(broad_categories=("deli", "spa"))
    pipeline, sleeps = _pipeline(client, settings=settings)

    job = pipeline.wait(
        pipeline.start_scrape(ScrapeRequest("Broad", TARGETS, mode=MODE_ALL_BUSINESSES)),
        timeout=5,
    )

    assert [call[1] for call in client.calls] == ["deli", "spa", "deli", "spa"]
    assert all(call[2] == 0 for call in client.calls)
    assert sleeps == [1.0, 1.0, 3.0, 1.0, 1.0]
    assert job.results[0].search_category == "deli"
    assert job.summary["jobDuplicates"] == 1


def test_failed_scrape_marks_job_failed() -> None:
    client = FakeSearchClient({"Verdun, Montreal": [BusinessListing(name="Verdun Deli", phone="514-555-0003")]})
    pipeline, _ = _pipeline(client)

    def broken_add_leads(*args, **kwargs):
        raise OSError("disk full")

    pipeline.leads.add_leads = broken_add_leads
    job_id = pipeline.start_scrape(ScrapeRequest("Spring", [TARGETS[1]], category="deli"))

    with pytest.raises(OSError):
        pipeline.wait(job_id, timeout=5)
    job = pipeline.job_status(job_id)
    assert job.status == JOB_FAILED
    assert job.error == "disk full"


@pytest.mark.parametrize(
    "request_kwargs",
    [
        {"targets": []},
        {"targets": TARGETS, "mode": "everything"},
        {"targets": TARGETS, "category": None},
    ],
)
def test_start_scrape_validates_request(request_kwargs) -> None:
    pipeline, _ = _pipeline(FakeSearchClient({}))
    kwargs = {"campaign_name": "Spring", "category": "deli", **request_kwargs}

    with pytest.raises(ValueError):
        pipeline.start_scrape(ScrapeRequest(**kwargs))


def test_scrape_requires_search_client() -> None:
    pipeline, _ = _pipeline()

    with pytest.raises(RuntimeError):
        pipeline.start_scrape(ScrapeRequest("Spring", TARGETS, category="deli"))


def test_unknown_job_id() -> None:
    pipeline, _ = _pipeline()

    with pytest.raises(JobNotFoundError):
        pipeline.job_status("missing")


def test_bulk_email_extraction() -> None:
    crawler = FakeCrawler(
        {"acme.com": ["info@acme.com", "sales@acme.com"]},
        failing={"broken.com"},
    )
    pipeline, sleeps = _pipeline(crawler=crawler)
    leads = pipeline.leads.add_leads(
        [
            BusinessListing(name="Acme", phone="5145550001", website="acme.com"),
            BusinessListing(name="Quiet", phone="5145550002", website="quiet.com"),
            BusinessListing(name="Offline", phone="5145550003"),
            BusinessListing(name="Known", phone="5145550004", website="known.com"),
            BusinessListing(name="Broken", phone="5145550005", website="broken.com"),
        ],
        "Spring",
    )
    pipeline.leads.attach_email(leads[3].id, "owner@known.com", ["owner@known.com"])
    lead_ids = [lead.id for lead in leads] + ["missing"]

    job = pipeline.wait(pipeline.start_email_extraction(lead_ids), timeout=5)

    assert job.status == JOB_COMPLETED
    assert job.progress == 100
    assert job.processed == 6
    assert (job.found, job.failed, job.skipped) == (1, 3, 1)
    assert [result.status for result in job.results] == [
        "found",
        "not_found",
        "failed",
        "skipped",
        "failed",
        "failed",
    ]
    assert job.results[2].error == "No website"
    assert job.results[5].error == "Lead not found"
    assert crawler.crawled == ["acme.com", "quiet.com", "broken.com"]
    assert sleeps == [1.0, 1.0, 1.0]

    enriched = pipeline.leads.get(leads[0].id)
    assert enriched.email == "info@acme.com"
    assert enriched.all_emails == ["info@acme.com", "sales@acme.com"]
    assert pipeline.job_summaries()[0]["found"] == 1
    assert pipeline.events.jobs()[0]["id"] == job.id


def test_email_extraction_requires_leads() -> None:
    pipeline, _ = _pipeline()

    with pytest.raises(ValueError):
        pipeline.start_email_extraction([])


def test_extract_single_attaches_best_email() -> None:
    pipeline, _ = _pipeline(crawler=FakeCrawler({"acme.com": ["info@acme.com"]}))
    lead = pipeline.leads.add_leads([BusinessListing(name="Acme", phone="5145550001")], "Spring")[0]

    result = pipeline.extract_single("acme.com", lead.id)
    missing = pipeline.extract_single("quiet.com", lead.id)

    assert result.best_email == "info@acme.com"
    assert missing.best_email is None
    assert pipeline.leads.get(lead.id).email == "info@acme.com"


class CampaignDeletingCrawler(FakeCrawler):
    """Delete the whole campaign while the first site is being crawled."""

    def __init__(self, sites: Dict[str, List[str]]) -> None:
        super().__init__(sites)
        self.leads: Optional[LeadRepository] = None
        self.campaign_id: Optional[str] = None

    def crawl(self, url):
        if not self.crawled:
            self.leads.delete_campaign(self.campaign_id)
        return super().crawl(url)


def test_email_extraction_finishes_when_leads_vanish_mid_job() -> None:
    crawler = CampaignDeletingCrawler({"acme.com": ["info@acme.com"], "beta.com": ["hello@beta.com"]})
    pipeline, sleeps = _pipeline(crawler=crawler)
    leads = pipeline.leads.add_leads(
        [
            BusinessListing(name="Acme", phone="5145550001", website="acme.com"),
            BusinessListing(name="Beta", phone="5145550002", website="beta.com"),
        ],
        "Spring",
    )
    crawler.leads = pipeline.leads
    crawler.campaign_id = pipeline.leads.find_campaign("Spring").id

    job = pipeline.wait(pipeline.start_email_extraction([lead.id for lead in leads]), timeout=5)

    assert job.status == JOB_COMPLETED
    assert job.processed == 2
    assert (job.found, job.failed, job.skipped) == (0, 2, 0)
    assert [result.error for result in job.results] == ["Lead not found", "Lead not found"]
    assert crawler.crawled == ["acme.com"]
    assert sleeps == [1.0]


def test_email_extraction_records_unexpected_errors_per_lead() -> None:
    crawler = FakeCrawler({"acme.com": ["info@acme.com"], "beta.com": ["hello@beta.com"]})
    pipeline, _ = _pipeline(crawler=crawler)
    leads = pipeline.leads.add_leads(
        [
            BusinessListing(name="Acme", phone="5145550001", website="acme.com"),
            BusinessListing(name="Beta", phone="5145550002", website="beta.com"),
        ],
        "Spring",
    )

    def broken_attach_email(*args, **kwargs):
        raise OSError("disk full")

    pipeline.leads.attach_email = broken_attach_email

    job = pipeline.wait(pipeline.start_email_extraction([lead.id for lead in leads]), timeout=5)

    assert job.status == JOB_COMPLETED
    assert job.processed == 2
    assert [(result.status, result.error) for result in job.results] == [
        ("failed", "disk full"),
        ("failed", "disk full"),
    ]
    assert crawler.crawled == ["acme.com", "beta.com"]
    assert len(pipeline.events.errors()) == 2
