from lead_harvester.progress import ScrapeProgress, empty_progress_document
from lead_harvester.storage import InMemoryStore


def _progress() -> ScrapeProgress:
    return ScrapeProgress(InMemoryStore(default_factory=empty_progress_document), clock=lambda: "2024-04-01T00:00:00.000Z")


def test_leads_are_split_evenly_rounding_up() -> None:
    progress = _progress()

    updated = progress.record_job(["H2J", "H2K", "H2L"], "Plateau", 10)

    assert [item.leads_count for item in updated] == [4, 4, 4]
    assert progress.get("H2J").status == "complete"
    assert progress.get("H2J").last_scraped == "2024-04-01T00:00:00.000Z"


def test_repeat_jobs_accumulate_and_track_campaigns() -> None:
    progress = _progress()
    progress.record_job(["H2J"], "Plateau", 5)
    progress.record_job(["H2J"], "Plateau", 3)
    progress.record_job(["H2J"], "Mile End", 2)

    entry = progress.get("H2J")
    assert entry.leads_count == 10
    assert entry.campaigns == ["Plateau", "Mile End"]


def test_job_without_postal_codes_is_ignored() -> None:
    progress = _progress()

    assert progress.record_job([], "Plateau", 10) == []
    assert progress.all() == {}
    assert progress.get("H2J") is None
