"""Visit a handful of pages on a lead's website and pick its best contact email."""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence
from urllib.parse import urljoin, urlparse

import requests

from ..models import CrawlResult
from ..rate_limit import DelayPolicy, Sleeper
from .extractor import extract_emails
from .scoring import EmailScorer

LOGGER = logging.getLogger(__name__)

CONTACT_PATHS: Sequence[str] = (
    "/contact",
    "/contact-us",
    "/contactez-nous",
    "/nous-joindre",
    "/about",
    "/about-us",
    "/a-propos",
)

DEFAULT_HEADERS: Dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9,fr;q=0.8",
}

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_CHUNK_SIZE = 16 * 1024


@dataclass
class CrawlerConfig:
    """Runtime knobs for :class:`WebsiteCrawler`."""

    timeout_seconds: float = 10.0
    page_delay_seconds: float = 0.5
    max_pages: int = 3
    contact_paths: Sequence[str] = CONTACT_PATHS


def normalize_site_url(url: str) -> str:
    url = url.strip()
    if not _SCHEME_RE.match(url):
        url = f"https://{url}"
    return url


def site_domain(url: str) -> Optional[str]:
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def candidate_pages(root_url: str, contact_paths: Sequence[str] = CONTACT_PATHS) -> List[str]:
    """Return the root URL followed by the well-known contact/about pages."""

    pages = [root_url]
    for path in contact_paths:
        try:
            pages.append(urljoin(root_url, path))
        except ValueError:
            LOGGER.debug("Skipping unresolvable contact path %s for %s", path, root_url)
    return pages


class WebsiteCrawler:
    """Fetch the home page and likely contact pages of a site, one at a time."""

    def __init__(
        self,
        config: Optional[CrawlerConfig] = None,
        *,
        scorer: Optional[EmailScorer] = None,
        session: Optional[requests.Session] = None,
        sleep: Sleeper = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or CrawlerConfig()
        self.scorer = scorer or EmailScorer()
        self._session = session or requests.Session()
        self._sleep = sleep
        self._monotonic = monotonic
        self._delay = DelayPolicy(self.config.page_delay_seconds)

    def crawl(self, url: Optional[str]) -> CrawlResult:
        if not url or not url.strip():
            return CrawlResult(errors=["No URL provided"])

        root_url = normalize_site_url(url)
        domain = site_domain(root_url)
        found: Dict[str, None] = {}
        errors: List[str] = []

        for page_url in candidate_pages(root_url, self.config.contact_paths)[: self.config.max_pages]:
            html = self._fetch(page_url, errors)
            if html:
                for email in extract_emails(html):
                    found.setdefault(email, None)
            self._delay.pause(self._sleep)

        scored = self.scorer.score(found, domain)
        LOGGER.debug("Crawled %s: %s raw candidates, %s kept", root_url, len(found), len(scored))
        return CrawlResult(
            emails=scored,
            best_email=scored[0].email if scored else None,
            total_found=len(found),
            errors=errors or None,
        )

    def _fetch(self, page_url: str, errors: List[str]) -> Optional[str]:
        # ``timeout`` bounds each socket read; the deadline bounds the whole page.
        deadline = self._monotonic() + self.config.timeout_seconds
        try:
            response = self._session.get(
                page_url,
                headers=DEFAULT_HEADERS,
                timeout=self.config.timeout_seconds,
                allow_redirects=True,
                stream=True,
            )
            try:
                if not 200 <= response.status_code < 300:
                    LOGGER.debug("Skipping %s (HTTP %s)", page_url, response.status_code)
                    return None
                body = self._read_body(response, deadline)
            finally:
                response.close()
        except requests.Timeout:
            LOGGER.info("Timed out fetching %s", page_url)
            errors.append(f"Timeout on {page_url}")
            return None
        except requests.RequestException as exc:
            LOGGER.info("Failed to fetch %s: %s", page_url, exc)
            errors.append(f"{exc} on {page_url}")
            return None
        return body.decode(response.encoding or "utf-8", errors="replace")

    def _read_body(self, response: requests.Response, deadline: float) -> bytes:
        chunks: List[bytes] = []
        for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
            chunks.append(chunk)
            if self._monotonic() > deadline:
                raise requests.Timeout(f"Read exceeded {self.config.timeout_seconds}s")
        return b"".join(chunks)


__all__ = [
    "CONTACT_PATHS",
    "CrawlerConfig",
    "DEFAULT_HEADERS",
    "WebsiteCrawler",
    "candidate_pages",
    "normalize_site_url",
    "site_domain",
]
