import logging

import pytest

from lead_harvester.events import EventLog, empty_log_document
from lead_harvester.storage import InMemoryStore


def test_events_are_newest_first_and_bounded() -> None:
    log = EventLog(max_events=3)
    for index in range(5):
        log.emit("info", "scraper", f"event {index}")

    assert [event.message for event in log.events()] == ["event 4", "event 3", "event 2"]
    assert [event.message for event in log.events(limit=1)] == ["event 4"]


def test_errors_are_kept_separately() -> None:
    log = EventLog()
    log.emit("info", "scraper", "started")
    log.emit("error", "scraper", "boom", target="Plateau")

    assert [event.message for event in log.errors()] == ["boom"]
    assert log.errors()[0].data == {"target": "Plateau"}
    log.clear_errors()
    assert log.errors() == []
    assert len(log.events()) == 2


def test_unknown_type_is_rejected() -> None:
    with pytest.raises(ValueError):
        EventLog().emit("debug", "scraper", "nope")


def test_events_are_forwarded_to_logging(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="lead_harvester.events"):
        EventLog().emit("warning", "crawler", "slow site")

    assert "[crawler] slow site" in caplog.text


def test_persisted_log_is_restored() -> None:
    store = InMemoryStore(default_factory=empty_log_document)
    log = EventLog(store, clock=lambda: "2024-05-01T00:00:00.000Z")
    log.emit("error", "dataforseo", "quota exceeded")
    log.record_job({"id": "job-1", "status": "completed"})

    restored = EventLog(store)

    assert restored.events()[0].message == "quota exceeded"
    assert restored.events()[0].timestamp == "2024-05-01T00:00:00.000Z"
    assert restored.errors()[0].node == "dataforseo"
    assert restored.jobs() == [{"id": "job-1", "status": "completed"}]
