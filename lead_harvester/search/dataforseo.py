"""Minimal DataForSEO v3 client used to discover local businesses."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import requests

from ..models import BusinessListing
from ..rate_limit import RateLimiter

LOGGER = logging.getLogger(__name__)

BASE_URL = "https://api.dataforseo.com/v3"
SUCCESS_STATUS = 20000
DEFAULT_TIMEOUT = 60.0
SEARCH_DEPTH = 100

LOCATION_CODES: Dict[str, int] = {
    "CANADA": 2124,
    "MONTREAL": 1001149,
    "TORONTO": 1002291,
    "VANCOUVER": 1002414,
    "QUEBEC_CITY": 1002150,
    "OTTAWA": 1002068,
    "CALGARY": 1000665,
    "USA": 2840,
    "NEW_YORK": 1023191,
    "LOS_ANGELES": 1013962,
    "CHICAGO": 1016367,
    "FRANCE": 2250,
    "PARIS": 1006094,
}

DEFAULT_LOCATION_CODE = LOCATION_CODES["CANADA"]

# Categories searched one after another by an "all businesses" scrape.
BROAD_CATEGORIES: Sequence[str] = (
    # Food & beverage
    "restaurant",
    "cafe",
    "coffee shop",
    "fast food",
    "bakery",
    "bar",
    "pizzeria",
    "sushi",
    "deli",
    "catering",
    # Retail
    "store",
    "shop",
    "boutique",
    "grocery store",
    "convenience store",
    "pharmacy",
    "liquor store",
    "cannabis dispensary",
    "florist",
    "pet store",
    "clothing store",
    "electronics store",
    "furniture store",
    "hardware store",
    # Health & wellness
    "gym",
    "fitness center",
    "yoga studio",
    "spa",
    "massage",
    "physiotherapy",
    "chiropractor",
    "dental clinic",
    "dentist",
    "medical clinic",
    "doctor",
    "veterinarian",
    "optometrist",
    # Professional services
    "office",
    "lawyer",
    "accountant",
    "warehouse",
    "printing",
    "shipping",
    "storage",
    "laundromat",
    "dry cleaner",
    "tailor",
    "jeweler",
    "photographer",
    "event venue",
)


class DataForSEOError(RuntimeError):
    """Raised when the API call fails or returns a non-success status code."""


def _first_result(payload: Dict[str, Any]) -> Dict[str, Any]:
    tasks = payload.get("tasks") or []
    if not tasks:
        return {}
    results = tasks[0].get("result") or []
    return results[0] if results else {}


def _listing_from_item(item: Dict[str, Any]) -> BusinessListing:
    rating = item.get("rating") or {}
    return BusinessListing(
        id=item.get("place_id") or item.get("cid"),
        name=item.get("title"),
        phone=item.get("phone"),
        website=item.get("url"),
        address=item.get("address"),
        rating=rating.get("value"),
        reviews_count=rating.get("votes_count"),
        category=item.get("category"),
        is_claimed=item.get("is_claimed"),
        place_id=item.get("place_id"),
    )


def score_business(listing: BusinessListing) -> int:
    """Rate how promising a listing is for cold calling, from 0 to 100."""

    score = 0.0
    if listing.phone:
        score += 25
    if listing.website:
        score += 15
    if listing.rating:
        score += min(30.0, float(listing.rating) * 6)
    reviews = listing.reviews_count or 0
    if reviews > 100:
        score += 20
    elif reviews > 50:
        score += 15
    elif reviews > 20:
        score += 10
    elif reviews > 5:
        score += 5
    if listing.is_claimed:
        score += 10
    return min(100, int(round(score)))


class DataForSEOClient:
    """Authenticated access to the handful of endpoints the pipeline needs."""

    def __init__(
        self,
        login: str,
        password: str,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        rate_limiter: Optional[RateLimiter] = None,
        location_code: int = DEFAULT_LOCATION_CODE,
        language_code: str = "en",
    ) -> None:
        if not login or not password:
            raise DataForSEOError("DataForSEO credentials are not configured")
        self._auth = (login, password)
        self._session = session or requests.Session()
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._rate_limiter = rate_limiter or RateLimiter(None)
        self.location_code = location_code
        self.language_code = language_code

    def request(self, endpoint: str, method: str = "POST", body: Optional[Any] = None) -> Dict[str, Any]:
        url = f"{self._base_url}{endpoint}"
        self._rate_limiter.acquire()
        LOGGER.debug("%s %s", method, url)
        try:
            response = self._session.request(
                method,
                url,
                auth=self._auth,
                json=body if body is not None and method.upper() != "GET" else None,
                timeout=self._timeout,
            )
            payload = response.json()
        except requests.RequestException as exc:
            raise DataForSEOError(f"DataForSEO request to {endpoint} failed: {exc}") from exc
        except ValueError as exc:
            raise DataForSEOError(f"DataForSEO returned invalid JSON for {endpoint}") from exc

        if not isinstance(payload, dict) or payload.get("status_code") != SUCCESS_STATUS:
            message = payload.get("status_message") if isinstance(payload, dict) else None
            raise DataForSEOError(f"DataForSEO Error: {message or 'Unknown error'}")
        return payload

    def get_balance(self) -> float:
        result = _first_result(self.request("/appendix/user_data", "GET"))
        return float((result.get("money") or {}).get("balance") or 0)

    def search_google_maps(
        self,
        keyword: str,
        location_code: Optional[int] = None,
        language_code: Optional[str] = None,
        depth: int = 20,
    ) -> List[BusinessListing]:
        payload = [
            {
                "keyword": keyword,
                "location_code": location_code or self.location_code,
                "language_code": language_code or self.language_code,
                "device": "desktop",
                "os": "windows",
                "depth": depth,
            }
        ]
        items = _first_result(self.request("/serp/google/maps/live/advanced", "POST", payload)).get("items") or []
        return [_listing_from_item(item) for item in items if item.get("type") == "maps_search"]

    def search_business_listings(
        self,
        location: str,
        category: str,
        min_rating: float = 0,
        limit: int = 100,
    ) -> List[BusinessListing]:
        """Search Google Maps for ``category`` around ``location``.

        Only listings with a phone number are returned; the result is
        truncated to ``limit``.
        """

        keyword = f"{category} {location}"
        results = self.search_google_maps(keyword, depth=SEARCH_DEPTH)
        filtered = results
        if min_rating > 0:
            filtered = [listing for listing in results if (listing.rating or 0) >= min_rating]
        with_phone = [listing for listing in filtered if listing.phone]
        LOGGER.info("Search %r: %s total, %s with phone numbers", keyword, len(results), len(with_phone))
        return with_phone[: limit or 100]

    def get_locations(self, country: Optional[str] = None) -> List[Dict[str, Any]]:
        endpoint = "/serp/google/locations"
        if country:
            endpoint += f"?country={quote(country)}"
        payload = self.request(endpoint, "GET")
        tasks = payload.get("tasks") or []
        return list(tasks[0].get("result") or []) if tasks else []


__all__ = [
    "BASE_URL",
    "BROAD_CATEGORIES",
    "DataForSEOClient",
    "DataForSEOError",
    "LOCATION_CODES",
    "score_business",
]
