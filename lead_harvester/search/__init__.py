"""Search API collaborators that produce inbound business listings."""

from .dataforseo import (  # noqa: F401
    BROAD_CATEGORIES,
    LOCATION_CODES,
    DataForSEOClient,
    DataForSEOError,
    score_business,
)

__all__ = [
    "BROAD_CATEGORIES",
    "DataForSEOClient",
    "DataForSEOError",
    "LOCATION_CODES",
    "score_business",
]
