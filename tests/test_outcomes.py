import pytest

from lead_harvester.dnc import DNCRegistry, empty_dnc_document
from lead_harvester.events import EventLog
from lead_harvester.leads import LeadRepository, empty_leads_document
from lead_harvester.models import BusinessListing
from lead_harvester.outcomes import CALL_OUTCOME_SOURCE, CallOutcomeProcessor
from lead_harvester.storage import InMemoryStore


def _processor(with_leads: bool = True):
    dnc = DNCRegistry(InMemoryStore(default_factory=empty_dnc_document))
    leads = LeadRepository(InMemoryStore(default_factory=empty_leads_document)) if with_leads else None
    events = EventLog()
    return CallOutcomeProcessor(dnc, leads, events=events), dnc, leads, events


def test_not_interested_blocks_phone_and_updates_lead() -> None:
    processor, dnc, leads, events = _processor()
    lead = leads.add_leads([BusinessListing(name="Acme", phone="514-555-0001")], "Plateau")[0]

    result = processor.process_outcome("514-555-0001", "not_interested", lead_id=lead.id)

    assert result.added_to_dnc is True
    assert result.status == "Not Interested"
    assert dnc.get("5145550001").reason == "Customer declined"
    assert dnc.get("5145550001").source == CALL_OUTCOME_SOURCE
    assert leads.get(lead.id).status == "Not Interested"
    assert result.to_dict()["leadId"] == lead.id
    assert events.events()[0].node == "outcomes"


def test_wrong_number_uses_its_own_reason() -> None:
    processor, dnc, _, _ = _processor()

    processor.process_outcome("514-555-0009", "wrong_number")

    assert dnc.get("5145550009").reason == "Wrong/invalid number"


@pytest.mark.parametrize(
    "outcome, status",
    [
        ("interested", "Qualified"),
        ("no_answer", "No Answer"),
        ("voicemail", "Voicemail Left"),
        ("callback", "Callback Scheduled"),
        ("busy", "Call Later"),
    ],
)
def test_other_outcomes_leave_dnc_alone(outcome: str, status: str) -> None:
    processor, dnc, _, _ = _processor()

    result = processor.process_outcome("514-555-0001", outcome)

    assert result.status == status
    assert result.added_to_dnc is False
    assert dnc.count() == 0


def test_unknown_outcome_is_rejected() -> None:
    processor, _, _, _ = _processor()

    with pytest.raises(ValueError):
        processor.process_outcome("514-555-0001", "hung_up")


def test_lead_update_requires_repository() -> None:
    processor, _, _, _ = _processor(with_leads=False)

    with pytest.raises(RuntimeError):
        processor.process_outcome("514-555-0001", "interested", lead_id="abc")
