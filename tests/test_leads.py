import itertools

import pytest

from lead_harvester.leads import LeadNotFoundError, LeadRepository, empty_leads_document
from lead_harvester.models import BusinessListing
from lead_harvester.storage import InMemoryStore, JsonFileStore


class StepClock:
    def __init__(self) -> None:
        self._ticks = itertools.count(1)

    def __call__(self) -> str:
        return f"2024-03-01T00:00:{next(self._ticks):02d}.000Z"


def _repository(store=None) -> LeadRepository:
    ids = itertools.count(1)
    return LeadRepository(
        store or InMemoryStore(default_factory=empty_leads_document),
        clock=StepClock(),
        id_factory=lambda: f"id-{next(ids)}",
    )


def test_add_leads_creates_campaign_once() -> None:
    repository = _repository()

    first = repository.add_leads([BusinessListing(name="Acme", phone="5145550001")], "Plateau", city="Montreal")
    repository.add_leads([BusinessListing(name="Beta", phone="5145550002")], "Plateau")

    campaigns = repository.campaigns()
    assert len(campaigns) == 1
    assert campaigns[0].leads_count == 2
    assert campaigns[0].city == "Montreal"
    assert first[0].campaign_id == campaigns[0].id
    assert first[0].status == "New"
    assert repository.find_campaign("Plateau").id == campaigns[0].id


def test_list_leads_filters_and_sorts_newest_first() -> None:
    repository = _repository()
    repository.add_leads(
        [
            BusinessListing(name="Acme Bakery", phone="5145550001", website="acme.com"),
            BusinessListing(name="Beta Garage", phone="5145550002"),
        ],
        "Plateau",
    )
    later = repository.add_leads([BusinessListing(name="Gamma Spa", phone="5145550003", website="gamma.ca")], "Verdun")
    repository.attach_email(later[0].id, "info@gamma.ca", ["info@gamma.ca"])

    assert [lead.name for lead in repository.list_leads()][0] == "Gamma Spa"
    assert [lead.name for lead in repository.list_leads(campaign="Plateau")] == ["Acme Bakery", "Beta Garage"]
    assert [lead.name for lead in repository.list_leads(search="garage")] == ["Beta Garage"]
    assert [lead.name for lead in repository.list_leads(has_email=True)] == ["Gamma Spa"]
    assert [lead.name for lead in repository.list_leads(has_email=False)] == ["Acme Bakery"]
    assert len(repository.list_leads(limit=1)) == 1


def test_update_status_and_missing_lead() -> None:
    repository = _repository()
    lead = repository.add_leads([BusinessListing(name="Acme", phone="5145550001")], "Plateau")[0]

    updated = repository.update_status(lead.id, "Qualified", notes="call back Monday")

    assert updated.status == "Qualified"
    assert updated.notes == "call back Monday"
    assert updated.updated_at is not None
    assert repository.list_leads(status="Qualified")[0].id == lead.id
    with pytest.raises(LeadNotFoundError):
        repository.update_status("missing", "Qualified")


def test_delete_campaign_cascades(tmp_path) -> None:
    store = JsonFileStore(tmp_path / "local-leads.json", empty_leads_document)
    repository = _repository(store)
    repository.add_leads([BusinessListing(name="Acme", phone="5145550001")], "Plateau")
    repository.add_leads([BusinessListing(name="Beta", phone="5145550002")], "Verdun")
    plateau = repository.find_campaign("Plateau")

    assert repository.delete_campaign(plateau.id) is True
    assert repository.delete_campaign(plateau.id) is False

    reloaded = _repository(JsonFileStore(tmp_path / "local-leads.json", empty_leads_document))
    assert [lead.name for lead in reloaded.all()] == ["Beta"]
    assert [campaign.name for campaign in reloaded.campaigns()] == ["Verdun"]


def test_stats() -> None:
    repository = _repository()
    leads = repository.add_leads(
        [
            BusinessListing(name="Acme", phone="5145550001", website="acme.com"),
            BusinessListing(name="Beta", phone="5145550002"),
        ],
        "Plateau",
    )
    repository.attach_email(leads[0].id, "info@acme.com", ["info@acme.com", "sales@acme.com"])
    repository.update_status(leads[1].id, "No Answer")

    stats = repository.stats().to_dict()

    assert stats["totalLeads"] == 2
    assert stats["totalCampaigns"] == 1
    assert stats["withEmail"] == 1
    assert stats["withWebsite"] == 1
    assert stats["byStatus"] == {"New": 1, "No Answer": 1}
    assert stats["byCampaign"] == {"Plateau": 2}


def test_update_status_rejects_unknown_status() -> None:
    repository = _repository()
    lead = repository.add_leads([BusinessListing(name="Acme", phone="5145550001")], "Plateau")[0]

    with pytest.raises(ValueError):
        repository.update_status(lead.id, "Maybe")
