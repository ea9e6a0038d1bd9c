import logging
from typing import List, Optional

from mapguide.core.config import settings
from mapguide.core.logger import logs
from mapguide.models.geo_model import ViewportState
from mapguide.models.poi_model import CityCacheEntry, PoiQueryKey, PoiRecord, RequestState
from mapguide.repos.overpass_repo import OverpassRepository
from mapguide.services.geo_bounds import intersect
from mapguide.services.poi_classifier import build_poi_set
from mapguide.services.request_slot import DebouncedRequest

POI_ERROR_MESSAGE = "No pudimos cargar los sitios."


class PoiFetchCoordinator:
    """
    Keeps the POI working set in step with the visible part of the current
    city, issuing as few Overpass queries as possible.

    A query is identified by PoiQueryKey (city id plus the viewport/city
    intersection at 3 decimals). The working set and ``last_key`` always
    describe the same successful query; whenever the set is cleared the key
    goes with it.
    """

    def __init__(
        self,
        overpass: OverpassRepository,
        debounce: Optional[float] = None,
        zoom_threshold: Optional[int] = None,
        limit: Optional[int] = None,
    ):
        self.overpass = overpass
        self.zoom_threshold = settings.POI_ZOOM_THRESHOLD if zoom_threshold is None else zoom_threshold
        self.limit = settings.POI_LIMIT if limit is None else limit
        self.request = DebouncedRequest(
            "poi-fetch",
            settings.POI_DEBOUNCE_SECONDS if debounce is None else debounce,
        )
        self.pois: List[PoiRecord] = []
        self.error: Optional[str] = None
        self.last_key: Optional[PoiQueryKey] = None
        self.pending_key: Optional[PoiQueryKey] = None

    @property
    def in_flight(self) -> bool:
        return self.request.in_flight

    @property
    def state(self) -> RequestState:
        return self.request.state

    def update(self, viewport: Optional[ViewportState], city: Optional[CityCacheEntry]):
        if viewport is None or viewport.zoom < self.zoom_threshold or city is None:
            self.clear()
            return

        intersection = intersect(viewport.bounds, city.bounds)
        if intersection is None:
            # Viewport is outside the tracked city
            self.clear()
            return

        key = PoiQueryKey.build(city.external_id, intersection)
        if key == self.last_key:
            self._cancel_pending()
            return
        if key == self.pending_key and self.request.in_flight:
            return

        self.pending_key = key
        self.error = None
        logs.log(logging.DEBUG, f"Scheduling POI fetch for {key}")
        self.request.schedule(
            lambda: self.overpass.fetch_elements(intersection),
            on_success=lambda elements: self._on_loaded(key, elements),
            on_failure=self._on_failed,
        )

    def _on_loaded(self, key: PoiQueryKey, elements):
        self.pois = build_poi_set(elements, limit=self.limit)
        self.last_key = key
        self.pending_key = None
        self.error = None
        logs.log(logging.INFO, f"Loaded {len(self.pois)} POIs", {"key": key, "raw_elements": len(elements)})

    def _on_failed(self, error: Exception):
        self.pois = []
        self.last_key = None
        self.pending_key = None
        self.error = POI_ERROR_MESSAGE

    def _cancel_pending(self):
        self.request.cancel()
        self.pending_key = None

    def clear(self):
        self.request.reset()
        self.pending_key = None
        self.pois = []
        self.last_key = None
        self.error = None
