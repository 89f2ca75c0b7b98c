"""Email discovery for lead websites: extraction, scoring and crawling."""

from .crawler import CrawlerConfig, WebsiteCrawler  # noqa: F401
from .extractor import clean_email, extract_emails  # noqa: F401
from .scoring import EmailScorer, SkipRule, build_skip_rules  # noqa: F401

__all__ = [
    "CrawlerConfig",
    "EmailScorer",
    "SkipRule",
    "WebsiteCrawler",
    "build_skip_rules",
    "clean_email",
    "extract_emails",
]
