"""Filter junk addresses and rank the rest by how useful they are for outreach.

Filtering is an ordered tuple of :class:`SkipRule` objects.  Rules are
evaluated in order and the first match decides why a candidate is dropped, so
each rule can be tested (or replaced) on its own.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Pattern, Sequence, Tuple

from ..models import EmailCandidate

BASE_SCORE = 50
DOMAIN_MATCH_BONUS = 30
PRIORITY_BONUS = 20
LONG_LOCAL_PART_PENALTY = 20
MANY_DIGITS_PENALTY = 15

MAX_EMAIL_LENGTH = 100
MAX_LOCAL_PART_LENGTH = 30
MAX_LOCAL_PART_DIGITS = 4
DEFAULT_TRACKING_ID_LENGTH = 20


@dataclass(frozen=True)
class SkipRule:
    """Named predicate over a cleaned, lower-cased address."""

    name: str
    reason: str
    predicate: Callable[[str], bool]

    def matches(self, email: str) -> bool:
        return self.predicate(email)


def _any_pattern(*patterns: str) -> Callable[[str], bool]:
    compiled: Tuple[Pattern[str], ...] = tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns)
    return lambda email: any(pattern.search(email) for pattern in compiled)


def build_skip_rules(tracking_id_length: int = DEFAULT_TRACKING_ID_LENGTH) -> Tuple[SkipRule, ...]:
    """Return the default rule set; ``tracking_id_length`` is a policy knob."""

    return (
        SkipRule("too_long", "address longer than 100 characters", lambda email: len(email) > MAX_EMAIL_LENGTH),
        SkipRule(
            "system_mailbox",
            "system-only mailbox",
            _any_pattern(r"^noreply@", r"^no-reply@", r"^donotreply@", r"^mailer-daemon@", r"^postmaster@", r"^webmaster@"),
        ),
        SkipRule(
            "placeholder_domain",
            "placeholder or test domain",
            _any_pattern(r"@example\.", r"@exemple\.", r"@test\.", r"@localhost"),
        ),
        SkipRule(
            "image_artifact",
            "image file name, not an address",
            _any_pattern(r"\.png$", r"\.jpg$", r"\.jpeg$", r"\.gif$", r"\.webp$", r"\.svg$"),
        ),
        SkipRule(
            "error_tracking",
            "error-tracking service address",
            _any_pattern(
                r"@sentry\.io$",
                r"@sentry\.wixpress\.com$",
                r"@sentry-next\.wixpress\.com$",
                r"@.*sentry.*\.",
                r"@wixpress\.com$",
            ),
        ),
        SkipRule(
            "placeholder_mailbox",
            "form placeholder mailbox",
            _any_pattern(r"^nom@", r"^name@", r"^email@", r"^your[._-]?email@", r"^votre[._-]?courriel@"),
        ),
        SkipRule(
            "tracking_id",
            "hex tracking identifier",
            _any_pattern(rf"^[a-f0-9]{{{int(tracking_id_length)},}}@"),
        ),
        SkipRule(
            "site_builder_demo",
            "website builder demo address",
            _any_pattern(
                r"@convertus\.com$",
                r"@dealer\.com$",
                r"@dealereprocess\.com$",
                r"@dealerinspire\.com$",
                r"@dealersocket\.com$",
            ),
        ),
        SkipRule(
            "demo_name",
            "stock demo name",
            _any_pattern(
                r"^jane@",
                r"^john@",
                r"^janedoe@",
                r"^johndoe@",
                r"^test@",
                r"^demo@",
                r"^sample@",
                r"^user@",
                r"^client@",
                r"^customer@",
            ),
        ),
    )


PRIORITY_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"^[a-z]+\.[a-z]+@",
        r"^[a-z]+_[a-z]+@",
        r"^info@",
        r"^contact@",
        r"^sales@",
        r"^ventes@",
        r"^hello@",
        r"^bonjour@",
        r"^direction@",
        r"^owner@",
        r"^proprietaire@",
        r"^manager@",
        r"^gerant@",
        r"^commercial@",
        r"^reception@",
        r"^admin@",
        r"^service@",
        r"^reservation@",
    )
)


def site_label(site_domain: Optional[str]) -> Optional[str]:
    """Return the root label of a host, e.g. ``acme`` for ``www.acme.com``."""

    if not site_domain:
        return None
    host = site_domain.lower()
    if host.startswith("www."):
        host = host[4:]
    label = host.split(".")[0]
    return label or None


class EmailScorer:
    """Drop junk candidates and rank the rest, best first."""

    def __init__(
        self,
        rules: Optional[Sequence[SkipRule]] = None,
        *,
        tracking_id_length: int = DEFAULT_TRACKING_ID_LENGTH,
        priority_patterns: Sequence[Pattern[str]] = PRIORITY_PATTERNS,
    ) -> None:
        self.rules: Tuple[SkipRule, ...] = tuple(rules) if rules is not None else build_skip_rules(tracking_id_length)
        self.priority_patterns = tuple(priority_patterns)

    def rejection(self, email: str) -> Optional[SkipRule]:
        for rule in self.rules:
            if rule.matches(email):
                return rule
        return None

    def rejection_reason(self, email: str) -> Optional[str]:
        rule = self.rejection(email)
        return rule.name if rule is not None else None

    def score_one(self, email: str, site_domain: Optional[str] = None) -> int:
        local_part, _, email_domain = email.partition("@")
        score = BASE_SCORE

        label = site_label(site_domain)
        if label and email_domain and label in email_domain:
            score += DOMAIN_MATCH_BONUS

        if any(pattern.search(email) for pattern in self.priority_patterns):
            score += PRIORITY_BONUS

        if len(local_part) > MAX_LOCAL_PART_LENGTH:
            score -= LONG_LOCAL_PART_PENALTY

        if sum(char.isdigit() for char in local_part) > MAX_LOCAL_PART_DIGITS:
            score -= MANY_DIGITS_PENALTY

        return score

    def score(self, candidates: Iterable[str], site_domain: Optional[str] = None) -> List[EmailCandidate]:
        """Return surviving candidates sorted by score; ties keep discovery order."""

        scored: List[EmailCandidate] = []
        for email in candidates:
            if not email or self.rejection(email) is not None:
                continue
            scored.append(EmailCandidate(email=email, score=self.score_one(email, site_domain)))
        scored.sort(key=lambda candidate: candidate.score, reverse=True)
        return scored


__all__ = [
    "EmailScorer",
    "PRIORITY_PATTERNS",
    "SkipRule",
    "build_skip_rules",
    "site_label",
]
