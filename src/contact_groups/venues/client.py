"""Venue lookup contract and the Google Places API (v1) implementation.

The detector only depends on :class:`VenueLookupClient`; tests supply a
fake, production wires :class:`PlacesApiClient` around a shared
``httpx.AsyncClient``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
import structlog

from contact_groups.errors import ExternalServiceError
from contact_groups.grouping.domain import DiscoveryMethod, Location, VenueCandidate

from .rate_limit import RetryPolicy

logger = structlog.get_logger()

PROVIDER_NAME = "google_places"
DEFAULT_BASE_URL = "https://places.googleapis.com/v1/places"

# Places API hard limit for maxResultCount.
_MAX_RESULT_COUNT = 20

# Awaited before each HTTP request (rate limiting, call accounting).
BeforeRequest = Callable[[], Awaitable[None]]

_FIELD_MASK = ",".join(
    [
        "places.id",
        "places.displayName",
        "places.location",
        "places.types",
        "places.rating",
        "places.userRatingCount",
        "places.businessStatus",
        "places.formattedAddress",
    ]
)


@dataclass(frozen=True)
class QueryContext:
    """Queries and search shape for the contextual text-search fallback."""

    queries: tuple[str, ...]
    radius_m: int = 2000
    max_results: int = 15


@dataclass(frozen=True)
class TextSearchResult:
    query: str
    places: list[VenueCandidate] = field(default_factory=list)


class VenueLookupClient(Protocol):
    async def search_nearby(
        self,
        center: Location,
        radius_m: float,
        included_types: list[str],
        max_results: int = 20,
        rank_preference: str = "POPULARITY",
        before_request: BeforeRequest | None = None,
    ) -> list[VenueCandidate]: ...

    async def contextual_text_search(
        self,
        center: Location,
        query_context: QueryContext,
        before_request: BeforeRequest | None = None,
    ) -> list[TextSearchResult]: ...


def parse_place(
    place: dict[str, Any],
    discovery_method: DiscoveryMethod,
    search_query: str | None = None,
) -> VenueCandidate | None:
    """Convert one Places API ``place`` object into a candidate.

    Returns ``None`` when the place lacks an id or coordinates; every
    other field is optional.
    """
    place_id = place.get("id")
    loc = place.get("location") or {}
    lat, lon = loc.get("latitude"), loc.get("longitude")
    if not place_id or lat is None or lon is None:
        return None

    display = place.get("displayName") or {}
    name = display.get("text") if isinstance(display, dict) else str(display)
    rating = place.get("rating")
    count = place.get("userRatingCount")
    return VenueCandidate(
        id=place_id,
        name=name or "",
        location=Location(latitude=float(lat), longitude=float(lon)),
        types=frozenset(place.get("types") or ()),
        rating=float(rating) if rating is not None else None,
        user_rating_count=int(count) if count is not None else None,
        business_status=place.get("businessStatus"),
        formatted_address=place.get("formattedAddress"),
        discovery_method=discovery_method,
        search_query=search_query,
    )


class PlacesApiClient:
    """Google Places API v1 client (``places:searchNearby`` / ``places:searchText``).

    Parameters
    ----------
    http_client:
        Shared ``httpx.AsyncClient``; the caller owns its lifecycle.
    api_key:
        Places API key, sent as ``X-Goog-Api-Key``.
    retry_policy:
        Backoff applied to retryable failures; one attempt by default.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._retry = retry_policy or RetryPolicy()

    async def _post(
        self,
        operation: str,
        body: dict[str, Any],
        before_request: BeforeRequest | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}:{operation}"
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self._api_key,
            "X-Goog-FieldMask": _FIELD_MASK,
        }

        async def attempt() -> dict[str, Any]:
            if before_request is not None:
                await before_request()
            try:
                response = await self._http.post(
                    url, json=body, headers=headers, timeout=self._timeout
                )
            except httpx.HTTPError as exc:
                raise ExternalServiceError(
                    f"{operation} request failed: {exc}", provider_name=PROVIDER_NAME
                ) from exc

            if response.status_code != 200:
                raise ExternalServiceError(
                    f"{operation} failed: {response.status_code} - {_error_message(response)}",
                    provider_name=PROVIDER_NAME,
                    status_code=response.status_code,
                    retryable=response.status_code == 429 or response.status_code >= 500,
                )
            try:
                return response.json()
            except ValueError as exc:
                raise ExternalServiceError(
                    f"{operation} returned invalid JSON",
                    provider_name=PROVIDER_NAME,
                    status_code=response.status_code,
                    retryable=False,
                ) from exc

        return await self._retry.run(attempt)

    async def search_nearby(
        self,
        center: Location,
        radius_m: float,
        included_types: list[str],
        max_results: int = 20,
        rank_preference: str = "POPULARITY",
        before_request: BeforeRequest | None = None,
    ) -> list[VenueCandidate]:
        body: dict[str, Any] = {
            "locationRestriction": {
                "circle": {
                    "center": {"latitude": center.latitude, "longitude": center.longitude},
                    "radius": float(radius_m),
                }
            },
            "maxResultCount": min(max_results, _MAX_RESULT_COUNT),
            "rankPreference": rank_preference,
        }
        if included_types:
            body["includedTypes"] = list(included_types)

        data = await self._post("searchNearby", body, before_request)
        places = [
            candidate
            for candidate in (
                parse_place(p, DiscoveryMethod.NEARBY_SEARCH) for p in data.get("places") or []
            )
            if candidate is not None
        ]
        logger.debug("places_nearby_search", radius_m=radius_m, found=len(places))
        return places

    async def search_text(
        self,
        query: str,
        center: Location,
        radius_m: float = 2000,
        max_results: int = 15,
        before_request: BeforeRequest | None = None,
    ) -> list[VenueCandidate]:
        body = {
            "textQuery": query,
            "maxResultCount": min(max_results, _MAX_RESULT_COUNT),
            "locationBias": {
                "circle": {
                    "center": {"latitude": center.latitude, "longitude": center.longitude},
                    "radius": float(radius_m),
                }
            },
        }
        data = await self._post("searchText", body, before_request)
        return [
            candidate
            for candidate in (
                parse_place(p, DiscoveryMethod.TEXT_SEARCH, search_query=query)
                for p in data.get("places") or []
            )
            if candidate is not None
        ]

    async def contextual_text_search(
        self,
        center: Location,
        query_context: QueryContext,
        before_request: BeforeRequest | None = None,
    ) -> list[TextSearchResult]:
        """Run every query in ``query_context`` and collect non-empty results.

        ``before_request`` is awaited ahead of every HTTP request, retries
        included.  A failing query is logged and skipped; only when every
        query fails is the last error raised.
        """
        results: list[TextSearchResult] = []
        last_error: ExternalServiceError | None = None
        failures = 0
        for query in query_context.queries:
            try:
                places = await self.search_text(
                    query,
                    center,
                    query_context.radius_m,
                    query_context.max_results,
                    before_request=before_request,
                )
            except ExternalServiceError as exc:
                failures += 1
                last_error = exc
                logger.warning("places_text_search_failed", query=query, error=str(exc))
                continue
            if places:
                results.append(TextSearchResult(query=query, places=places))

        if last_error is not None and failures == len(query_context.queries):
            raise last_error
        return results


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase or "unknown error"
    if isinstance(payload, dict):
        error = payload.get("error") or {}
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
    return response.reason_phrase or "unknown error"
