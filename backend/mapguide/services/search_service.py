import logging
from typing import Callable, List, Optional

from mapguide.core.config import settings
from mapguide.core.errors import NetworkError, ParseError
from mapguide.core.logger import logs
from mapguide.models.geo_model import LatLng
from mapguide.models.map_model import SearchResult, SearchState, ViewTarget
from mapguide.repos.geocoding_repo import GeocodingRepository
from mapguide.services.geo_bounds import center_of, parse_bounds
from mapguide.services.request_slot import DebouncedRequest

SEARCH_ERROR_MESSAGE = "No pudimos buscar la ubicacion."
NO_RESULTS_MESSAGE = "Sin resultados."
SEARCH_RESULT_ZOOM = 14


def parse_search_result(raw: dict) -> Optional[SearchResult]:
    try:
        point = LatLng(lat=float(raw["lat"]), lng=float(raw["lon"]))
    except (KeyError, TypeError, ValueError):
        return None
    bounds = None
    if raw.get("boundingbox"):
        try:
            bounds = parse_bounds(raw["boundingbox"])
        except ParseError:
            bounds = None
    return SearchResult(
        place_id=int(raw.get("place_id") or 0),
        display_name=raw.get("display_name") or "",
        point=point,
        bounds=bounds,
        type=raw.get("type"),
    )


def view_target_for(result: SearchResult) -> ViewTarget:
    """Fit the result's bounds when it has usable ones, otherwise fly to its point."""
    if result.bounds is not None:
        return ViewTarget(center=center_of(result.bounds), bounds=result.bounds)
    return ViewTarget(center=result.point, zoom=SEARCH_RESULT_ZOOM)


class LocationSearch:
    """
    Debounced search-as-you-type over Nominatim. Each keystroke supersedes
    the previous lookup; queries shorter than the minimum length clear the
    results without any network call.
    """

    def __init__(
        self,
        geocoder: GeocodingRepository,
        debounce: Optional[float] = None,
        min_length: Optional[int] = None,
    ):
        self.geocoder = geocoder
        self.min_length = settings.SEARCH_MIN_LENGTH if min_length is None else min_length
        self.request = DebouncedRequest(
            "text-search",
            settings.SEARCH_DEBOUNCE_SECONDS if debounce is None else debounce,
        )
        self.state = SearchState()

    def set_query(self, query: str):
        query = query.strip()
        self.request.cancel()
        if len(query) < self.min_length:
            self.state = SearchState(query=query)
            return
        self.state = SearchState(query=query, loading=True)
        self.request.schedule(
            lambda: self.geocoder.search(query),
            on_success=lambda raw: self._on_results(query, raw),
            on_failure=lambda error: self._on_failed(query),
        )

    async def submit(self, query: str) -> List[SearchResult]:
        """
        Explicit submit: reuse the results already shown for this query,
        otherwise search immediately without debounce.
        """
        query = query.strip()
        if not query:
            return []
        if self.state.query == query and self.state.results:
            return self.state.results
        self.request.cancel()
        try:
            raw = await self.geocoder.search(query)
        except NetworkError:
            self.state = SearchState(query=query, error=SEARCH_ERROR_MESSAGE)
            return []
        self._on_results(query, raw)
        return self.state.results

    def _on_results(self, query: str, raw: list):
        results = [r for r in (parse_search_result(item) for item in raw) if r is not None]
        self.state = SearchState(
            query=query,
            results=results,
            error=None if results else NO_RESULTS_MESSAGE,
        )

    def _on_failed(self, query: str):
        self.state = SearchState(query=query, error=SEARCH_ERROR_MESSAGE)


class AddressLookup:
    """Address autofill for a draft place: one lookup at a time, latest wins."""

    def __init__(self, geocoder: GeocodingRepository, debounce: Optional[float] = None):
        self.geocoder = geocoder
        self.request = DebouncedRequest(
            "address-lookup",
            settings.ADDRESS_DEBOUNCE_SECONDS if debounce is None else debounce,
        )

    @property
    def in_flight(self) -> bool:
        return self.request.in_flight

    def lookup(self, lat: float, lng: float, on_address: Callable[[float, float, str], None]):
        self.request.schedule(
            lambda: self.geocoder.reverse(lat, lng, zoom=settings.ADDRESS_DETAIL_ZOOM),
            on_success=lambda data: on_address(lat, lng, data.get("display_name") or ""),
            on_failure=lambda error: self._on_failed(lat, lng, on_address),
        )

    def cancel(self):
        self.request.cancel()

    def _on_failed(self, lat, lng, on_address):
        logs.log(logging.INFO, f"Address lookup failed for {lat},{lng}")
        on_address(lat, lng, "")
