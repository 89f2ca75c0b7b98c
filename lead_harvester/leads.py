"""Local store of leads grouped into campaigns."""
from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .clock import Clock, utc_now_iso
from .models import BusinessListing, Campaign, Lead
from .storage import Document, DocumentStore

LOGGER = logging.getLogger(__name__)

LEAD_STATUSES = (
    "New",
    "Queued",
    "Qualified",
    "Not Interested",
    "No Answer",
    "Voicemail Left",
    "Invalid",
    "Callback Scheduled",
    "Call Later",
)


class LeadNotFoundError(KeyError):
    """Raised when a lead id does not exist in the repository."""


def empty_leads_document() -> Document:
    return {"leads": [], "campaigns": [], "lastUpdated": None}


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class LeadStats:
    total_leads: int = 0
    total_campaigns: int = 0
    with_email: int = 0
    with_website: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    by_campaign: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "totalLeads": self.total_leads,
            "totalCampaigns": self.total_campaigns,
            "withEmail": self.with_email,
            "withWebsite": self.with_website,
            "byStatus": dict(self.by_status),
            "byCampaign": dict(self.by_campaign),
        }


class LeadRepository:
    """CRUD over the ``{"leads", "campaigns"}`` document."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        clock: Clock = utc_now_iso,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._store = store
        self._clock = clock
        self._id_factory = id_factory

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    def _load(self) -> Document:
        document = self._store.load()
        document["leads"] = list(document.get("leads") or [])
        document["campaigns"] = list(document.get("campaigns") or [])
        return document

    def _save(self, document: Document) -> None:
        document["lastUpdated"] = self._clock()
        self._store.save(document)

    # ------------------------------------------------------------------
    # Campaigns
    # ------------------------------------------------------------------
    def campaigns(self) -> List[Campaign]:
        return [Campaign.from_dict(item) for item in self._load()["campaigns"]]

    def find_campaign(self, id_or_name: str) -> Optional[Campaign]:
        for campaign in self.campaigns():
            if campaign.id == id_or_name or campaign.name == id_or_name:
                return campaign
        return None

    def delete_campaign(self, campaign_id: str) -> bool:
        """Delete a campaign together with every lead that belongs to it."""

        document = self._load()
        remaining = [item for item in document["campaigns"] if item.get("id") != campaign_id]
        if len(remaining) == len(document["campaigns"]):
            return False
        before = len(document["leads"])
        document["campaigns"] = remaining
        document["leads"] = [item for item in document["leads"] if item.get("campaignId") != campaign_id]
        self._save(document)
        LOGGER.info("Deleted campaign %s and %s leads", campaign_id, before - len(document["leads"]))
        return True

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------
    def add_leads(
        self,
        listings: Iterable[BusinessListing],
        campaign_name: str,
        city: Optional[str] = None,
        postal_codes: Sequence[str] = (),
    ) -> List[Lead]:
        """Store ``listings`` as new leads in ``campaign_name`` (created on demand)."""

        document = self._load()
        now = self._clock()

        campaign_data = next((item for item in document["campaigns"] if item.get("name") == campaign_name), None)
        if campaign_data is None:
            campaign = Campaign(
                id=self._id_factory(),
                name=campaign_name,
                created_at=now,
                city=city,
                postal_codes=list(postal_codes),
            )
            campaign_data = campaign.to_dict()
            document["campaigns"].append(campaign_data)
        else:
            campaign = Campaign.from_dict(campaign_data)

        added: List[Lead] = []
        for listing in listings:
            lead = Lead(
                id=self._id_factory(),
                name=listing.name,
                phone=listing.phone,
                campaign_id=campaign.id,
                campaign_name=campaign.name,
                imported_at=now,
                website=listing.website,
                address=listing.address,
                rating=listing.rating,
                reviews_count=listing.reviews_count,
                category=listing.category,
                search_category=listing.search_category,
                neighborhood=listing.neighborhood,
            )
            document["leads"].append(lead.to_dict())
            added.append(lead)

        campaign_data["leadsCount"] = int(campaign_data.get("leadsCount") or 0) + len(added)
        self._save(document)
        LOGGER.info("Added %s leads to campaign %s", len(added), campaign.name)
        return added

    def get(self, lead_id: str) -> Optional[Lead]:
        for item in self._load()["leads"]:
            if item.get("id") == lead_id:
                return Lead.from_dict(item)
        return None

    def all(self) -> List[Lead]:
        return [Lead.from_dict(item) for item in self._load()["leads"]]

    def list_leads(
        self,
        *,
        campaign: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        has_email: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> List[Lead]:
        """Return leads newest first, filtered by the supplied criteria.

        ``campaign`` matches either the campaign id or its name.
        ``has_email=False`` lists only leads that still have a website to
        crawl, i.e. a website but no email.
        """

        leads = self.all()
        if campaign:
            leads = [lead for lead in leads if campaign in (lead.campaign_id, lead.campaign_name)]
        if status:
            leads = [lead for lead in leads if lead.status == status]
        if search:
            needle = search.lower()
            leads = [
                lead
                for lead in leads
                if needle in (lead.name or "").lower()
                or needle in (lead.phone or "")
                or needle in (lead.address or "").lower()
            ]
        if has_email is True:
            leads = [lead for lead in leads if lead.email]
        elif has_email is False:
            leads = [lead for lead in leads if lead.website and not lead.email]

        leads.sort(key=lambda lead: lead.imported_at, reverse=True)
        if limit is not None:
            leads = leads[:limit]
        return leads

    def update_status(self, lead_id: str, status: str, notes: Optional[str] = None) -> Lead:
        if status not in LEAD_STATUSES:
            raise ValueError(f"Unknown lead status '{status}'. Expected one of {LEAD_STATUSES}")

        def apply(item: Dict[str, object]) -> None:
            item["status"] = status
            if notes is not None:
                item["notes"] = notes

        return self._update(lead_id, apply)

    def attach_email(self, lead_id: str, best_email: Optional[str], all_emails: Sequence[str]) -> Lead:
        extracted_at = self._clock()

        def apply(item: Dict[str, object]) -> None:
            item["email"] = best_email
            item["allEmails"] = list(all_emails)
            item["emailExtractedAt"] = extracted_at

        return self._update(lead_id, apply)

    def _update(self, lead_id: str, apply: Callable[[Dict[str, object]], None]) -> Lead:
        document = self._load()
        for item in document["leads"]:
            if item.get("id") == lead_id:
                apply(item)
                item["updatedAt"] = self._clock()
                self._save(document)
                return Lead.from_dict(item)
        raise LeadNotFoundError(lead_id)

    def stats(self) -> LeadStats:
        leads = self.all()
        return LeadStats(
            total_leads=len(leads),
            total_campaigns=len(self._load()["campaigns"]),
            with_email=sum(1 for lead in leads if lead.email),
            with_website=sum(1 for lead in leads if lead.website),
            by_status=dict(Counter(lead.status for lead in leads)),
            by_campaign=dict(Counter(lead.campaign_name for lead in leads)),
        )


__all__ = [
    "LEAD_STATUSES",
    "LeadNotFoundError",
    "LeadRepository",
    "LeadStats",
    "empty_leads_document",
]
