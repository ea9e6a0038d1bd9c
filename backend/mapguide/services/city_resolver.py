import logging
from typing import Callable, Optional

from mapguide.core.config import settings
from mapguide.core.errors import NoCityResolved, ParseError
from mapguide.core.logger import logs
from mapguide.models.geo_model import LatLng
from mapguide.models.poi_model import CityCacheEntry, RequestState
from mapguide.repos.geocoding_repo import GeocodingRepository
from mapguide.services.geo_bounds import contains, parse_bounds
from mapguide.services.request_slot import DebouncedRequest

CITY_ADDRESS_KEYS = ("city", "town", "village", "municipality")


def city_from_reverse(data: dict) -> CityCacheEntry:
    """
    Build a cache entry from a Nominatim reverse answer.
    Raises NoCityResolved when the answer has no usable name or bounds.
    """
    address = data.get("address") or {}
    name = next((address[key] for key in CITY_ADDRESS_KEYS if address.get(key)), None)
    raw_bounds = data.get("boundingbox")
    if not name or not raw_bounds:
        raise NoCityResolved("reverse geocoding returned no city")
    try:
        bounds = parse_bounds(raw_bounds)
    except ParseError as e:
        logs.log(logging.WARNING, f"Dropping city '{name}': {str(e)}")
        raise NoCityResolved(str(e)) from e
    try:
        place_id = int(data["place_id"])
    except (KeyError, TypeError, ValueError) as e:
        raise NoCityResolved(f"city '{name}' has no usable place id") from e
    return CityCacheEntry(name=name, external_id=place_id, bounds=bounds)


class CityResolver:
    """
    Answers "which city is the viewport in" with as few reverse-geocoding
    calls as possible. Holds a single cache entry; a center inside the cached
    bounds never triggers a request.
    """

    def __init__(
        self,
        geocoder: GeocodingRepository,
        on_change: Optional[Callable[[Optional[CityCacheEntry]], None]] = None,
        debounce: Optional[float] = None,
        zoom_threshold: Optional[int] = None,
    ):
        self.geocoder = geocoder
        self.on_change = on_change
        self.zoom_threshold = settings.POI_ZOOM_THRESHOLD if zoom_threshold is None else zoom_threshold
        self.request = DebouncedRequest(
            "city-resolver",
            settings.CITY_DEBOUNCE_SECONDS if debounce is None else debounce,
        )
        self._entry: Optional[CityCacheEntry] = None
        self.no_city = False

    @property
    def entry(self) -> Optional[CityCacheEntry]:
        return self._entry

    @property
    def state(self) -> RequestState:
        return self.request.state

    @property
    def in_flight(self) -> bool:
        return self.request.in_flight

    def update(self, center: LatLng, zoom: int):
        if zoom < self.zoom_threshold:
            self.request.reset()
            self.no_city = False
            self._replace(None)
            return

        if self._entry is not None and contains(center, self._entry.bounds):
            # Drop any lookup still pending for a center we have since left
            if self.request.in_flight:
                self.request.cancel()
            return

        self.request.schedule(
            lambda: self.geocoder.reverse(center.lat, center.lng, zoom=settings.CITY_DETAIL_ZOOM),
            on_success=self._on_resolved,
            on_failure=self._on_failed,
        )

    def clear(self):
        self.request.reset()
        self._replace(None)

    def _on_resolved(self, data: dict):
        try:
            entry = city_from_reverse(data)
        except NoCityResolved as e:
            logs.log(logging.INFO, f"No city resolved: {str(e)}")
            self.no_city = True
            self._replace(None)
            return

        self.no_city = False
        if self._entry is not None and self._entry.external_id == entry.external_id:
            return
        logs.log(logging.INFO, f"City resolved: {entry.name} ({entry.external_id})")
        self._replace(entry)

    def _on_failed(self, error: Exception):
        # Keep whatever entry we had; the next settled move retries.
        logs.log(logging.WARNING, f"City resolution failed, keeping previous city: {str(error)}")

    def _replace(self, entry: Optional[CityCacheEntry]):
        if entry == self._entry:
            return
        self._entry = entry
        if self.on_change is not None:
            self.on_change(entry)
