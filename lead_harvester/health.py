"""Summarise whether the pipeline has enough callable leads left."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .dnc import DNCRegistry
from .leads import LeadRepository
from .pool import LeadPool

AVAILABLE_STATUSES = ("New", "Queued")
CALLBACK_STATUSES = ("Callback Scheduled", "No Answer")

DEFAULT_DAILY_TARGET = 1000
CRITICAL_AVAILABLE = 100
LOW_AVAILABLE = 500
MAX_PENDING_CALLBACKS = 100
MIN_DAYS_REMAINING = 2


@dataclass
class HealthAlert:
    level: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"level": self.level, "message": self.message}


@dataclass
class HealthReport:
    available_leads: int
    pending_callbacks: int
    unique_phones_tracked: int
    dnc_list_size: int
    last_scrape: Optional[str]
    days_remaining: int
    daily_target: int
    alerts: List[HealthAlert] = field(default_factory=list)

    @property
    def is_critical(self) -> bool:
        return any(alert.level == "critical" for alert in self.alerts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "availableLeads": self.available_leads,
            "pendingCallbacks": self.pending_callbacks,
            "uniquePhonesTracked": self.unique_phones_tracked,
            "dncListSize": self.dnc_list_size,
            "lastScrape": self.last_scrape,
            "daysRemaining": self.days_remaining,
            "dailyTarget": self.daily_target,
            "alerts": [alert.to_dict() for alert in self.alerts],
        }


def build_alerts(available: int, callbacks: int, days_remaining: int) -> List[HealthAlert]:
    alerts: List[HealthAlert] = []
    if available < CRITICAL_AVAILABLE:
        alerts.append(HealthAlert("critical", f"Only {available} leads available! Need to scrape more."))
    elif available < LOW_AVAILABLE:
        alerts.append(HealthAlert("warning", f"Lead pool running low: {available} available."))
    if callbacks > MAX_PENDING_CALLBACKS:
        alerts.append(HealthAlert("warning", f"{callbacks} callbacks pending."))
    if days_remaining < MIN_DAYS_REMAINING:
        alerts.append(HealthAlert("critical", f"Only {days_remaining} day(s) of leads remaining!"))
    return alerts


def pipeline_health(
    leads: LeadRepository,
    pool: LeadPool,
    dnc: DNCRegistry,
    daily_target: int = DEFAULT_DAILY_TARGET,
) -> HealthReport:
    all_leads = leads.all()
    available = sum(1 for lead in all_leads if lead.status in AVAILABLE_STATUSES)
    callbacks = sum(1 for lead in all_leads if lead.status in CALLBACK_STATUSES)
    days_remaining = available // daily_target if daily_target > 0 else 0
    stats = pool.get_stats()
    return HealthReport(
        available_leads=available,
        pending_callbacks=callbacks,
        unique_phones_tracked=stats.unique_phones,
        dnc_list_size=dnc.count(),
        last_scrape=stats.last_scrape,
        days_remaining=days_remaining,
        daily_target=daily_target,
        alerts=build_alerts(available, callbacks, days_remaining),
    )


__all__ = ["HealthAlert", "HealthReport", "build_alerts", "pipeline_health"]
