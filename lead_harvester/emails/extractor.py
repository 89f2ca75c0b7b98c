"""Pull email-shaped strings out of raw HTML."""
from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional
from urllib.parse import unquote

_ADDRESS = r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"

MAILTO_RE = re.compile(rf"mailto:({_ADDRESS})", re.IGNORECASE)
EMAIL_RE = re.compile(rf"\b({_ADDRESS})\b", re.IGNORECASE)
_ADDRESS_RE = re.compile(f"({_ADDRESS})")

_LEADING_ARTIFACTS = re.compile(r"^[\"'\s\\]+")
_TRAILING_ARTIFACTS = re.compile(r"[\"'\s\\]+$")
_MAILTO_PREFIX = re.compile(r"^mailto:", re.IGNORECASE)

# Substitutions used when the percent-encoding is not valid UTF-8.
_MANUAL_ESCAPES = (
    (re.compile("%22"), '"'),
    (re.compile("%20"), " "),
    (re.compile("%3a", re.IGNORECASE), ":"),
)


def _percent_decode(value: str) -> str:
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        for pattern, replacement in _MANUAL_ESCAPES:
            value = pattern.sub(replacement, value)
        return value


def clean_email(raw: Optional[str]) -> Optional[str]:
    """Normalise a scraped match, returning ``None`` when no address survives.

    Naive scraping drags along quotes, escaped backslashes and URL-encoded
    whitespace, so the cleaned text is searched again for the first
    ``local@domain.tld`` substring.
    """

    if not raw:
        return None

    cleaned = raw.lower().strip()
    if "%" in cleaned:
        cleaned = _percent_decode(cleaned)

    cleaned = _LEADING_ARTIFACTS.sub("", cleaned)
    cleaned = _TRAILING_ARTIFACTS.sub("", cleaned)
    cleaned = _MAILTO_PREFIX.sub("", cleaned)

    match = _ADDRESS_RE.search(cleaned)
    if match is None:
        return None
    return match.group(1).lower()


def _add_all(found: Dict[str, None], matches: Iterable[str]) -> None:
    for match in matches:
        email = clean_email(match)
        if email:
            found.setdefault(email, None)


def extract_emails(html: Optional[str]) -> List[str]:
    """Return unique cleaned addresses in the order they were discovered.

    ``mailto:`` targets are collected first, then every bare address in the
    document text.
    """

    if not html:
        return []
    found: Dict[str, None] = {}
    _add_all(found, MAILTO_RE.findall(html))
    _add_all(found, EMAIL_RE.findall(html))
    return list(found)


__all__ = ["EMAIL_RE", "MAILTO_RE", "clean_email", "extract_emails"]
