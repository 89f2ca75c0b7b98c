from lead_harvester.models import BusinessListing
from lead_harvester.pool import LeadPool, empty_pool_document
from lead_harvester.storage import InMemoryStore


def _pool() -> LeadPool:
    return LeadPool(InMemoryStore(default_factory=empty_pool_document), clock=lambda: "2024-02-01T00:00:00.000Z")


def test_track_keeps_first_lead() -> None:
    pool = _pool()

    assert pool.track("514-555-1234", "lead-1", "Plateau") is True
    assert pool.track("(514) 555-1234", "lead-2", "Verdun") is False

    entry = pool.get("5145551234")
    assert entry.lead_id == "lead-1"
    assert entry.campaign == "Plateau"
    assert pool.exists("+1 514 555 1234")


def test_track_ignores_unparseable_phone() -> None:
    pool = _pool()

    assert pool.track(None, "lead-1", "Plateau") is False
    assert pool.get_stats().unique_phones == 0


def test_track_leads_uses_single_save() -> None:
    store = InMemoryStore(default_factory=empty_pool_document)
    pool = LeadPool(store)
    listings = [
        BusinessListing(id="a", phone="514-555-0001"),
        BusinessListing(id="b", phone="514-555-0002"),
        BusinessListing(id="c", phone="514-555-0001"),
        BusinessListing(id="d", phone=None),
    ]

    assert pool.track_leads(listings, "Plateau") == 2
    assert store.saves == 1
    assert pool.get("5145550001").lead_id == "a"


def test_update_scrape_stats_accumulates() -> None:
    pool = _pool()
    pool.track("514-555-1234", "lead-1", "Plateau")

    pool.update_scrape_stats(scraped=10, imported=6, duplicates=4)
    stats = pool.update_scrape_stats(scraped=5, imported=5, duplicates=0)

    assert stats.unique_phones == 1
    assert stats.total_scraped == 15
    assert stats.total_imported == 11
    assert stats.total_duplicates == 4
    assert stats.last_scrape == "2024-02-01T00:00:00.000Z"
