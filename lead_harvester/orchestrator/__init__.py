"""Background pipeline coordinating scraping, deduplication and email enrichment."""

from .service import (  # noqa: F401
    LeadPipeline,
    PipelineSettings,
    ScrapeRequest,
)

__all__ = ["LeadPipeline", "PipelineSettings", "ScrapeRequest"]
