"""Translate call outcomes into lead statuses and DNC registrations."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .dnc import DNCRegistry
from .events import EventLog
from .leads import LeadRepository
from .models import Lead

LOGGER = logging.getLogger(__name__)

CALL_OUTCOME_SOURCE = "call_outcome"


@dataclass(frozen=True)
class OutcomeRule:
    status: str
    dnc_reason: Optional[str] = None


OUTCOME_RULES: Dict[str, OutcomeRule] = {
    "interested": OutcomeRule("Qualified"),
    "not_interested": OutcomeRule("Not Interested", dnc_reason="Customer declined"),
    "no_answer": OutcomeRule("No Answer"),
    "voicemail": OutcomeRule("Voicemail Left"),
    "wrong_number": OutcomeRule("Invalid", dnc_reason="Wrong/invalid number"),
    "callback": OutcomeRule("Callback Scheduled"),
    "busy": OutcomeRule("Call Later"),
}


@dataclass
class OutcomeResult:
    outcome: str
    status: str
    added_to_dnc: bool = False
    lead: Optional[Lead] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "outcome": self.outcome,
            "newStatus": self.status,
            "addedToDNC": self.added_to_dnc,
            "leadId": self.lead.id if self.lead else None,
        }


class CallOutcomeProcessor:
    """Apply the consequences of a finished call."""

    def __init__(
        self,
        dnc: DNCRegistry,
        leads: Optional[LeadRepository] = None,
        *,
        events: Optional[EventLog] = None,
    ) -> None:
        self._dnc = dnc
        self._leads = leads
        self._events = events

    def process_outcome(self, phone: Optional[str], outcome: str, lead_id: Optional[str] = None) -> OutcomeResult:
        rule = OUTCOME_RULES.get(outcome)
        if rule is None:
            raise ValueError(f"Unknown call outcome '{outcome}'. Expected one of {sorted(OUTCOME_RULES)}")

        result = OutcomeResult(outcome=outcome, status=rule.status)
        if rule.dnc_reason is not None:
            result.added_to_dnc = self._dnc.add(phone, rule.dnc_reason, CALL_OUTCOME_SOURCE)

        if lead_id is not None:
            if self._leads is None:
                raise RuntimeError("A lead repository is required to update lead statuses")
            result.lead = self._leads.update_status(lead_id, rule.status)

        LOGGER.info("Call outcome %s for %s -> %s", outcome, phone, rule.status)
        if self._events is not None:
            self._events.emit(
                "info",
                "outcomes",
                f"Call outcome '{outcome}' recorded",
                phone=phone,
                status=rule.status,
                addedToDNC=result.added_to_dnc,
            )
        return result


__all__ = ["CALL_OUTCOME_SOURCE", "CallOutcomeProcessor", "OUTCOME_RULES", "OutcomeResult", "OutcomeRule"]
