import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

import httpx

from mapguide.core.config import settings
from mapguide.core.errors import PlaceStorageError
from mapguide.core.logger import logs
from mapguide.core.token_provider import TokenProvider
from mapguide.models.geo_model import BoundingBox, LatLng, ViewportState
from mapguide.models.map_model import DraftResponse, MapOverlay, PlaceDraft, ViewTarget
from mapguide.models.places_model import (
    CategorySummary,
    Photo,
    PlaceCreate,
    PlaceStatus,
    PlaceUpdate,
    SavedPlace,
)
from mapguide.models.poi_model import CityCacheEntry
from mapguide.repos.geocoding_repo import GeocodingRepository
from mapguide.repos.overpass_repo import OverpassRepository
from mapguide.repos.places_repo import PlacesRepository
from mapguide.services.city_resolver import CityResolver
from mapguide.services.geo_bounds import to_bbox_param
from mapguide.services.marker_projector import project_pois, project_saved_places
from mapguide.services.poi_fetcher import PoiFetchCoordinator
from mapguide.services.request_slot import DebouncedRequest
from mapguide.services.search_service import AddressLookup, LocationSearch
from mapguide.services.viewport_tracker import ViewportTracker

ZOOM_HINT_MESSAGE = "Acerca el mapa para ver sitios de interes."
LOADING_MESSAGE = "Buscando sitios de interes..."
NO_CITY_MESSAGE = "No hay sitios de interes en esta zona."
NO_SELECTION_MESSAGE = "No hay ningun sitio seleccionado"
FOCUS_ZOOM = 16
NAME_REQUIRED_MESSAGE = "El nombre es obligatorio"


class MapSession:
    """
    Server-side state of one open map view.

    Wires ViewportTracker -> CityResolver -> PoiFetchCoordinator and keeps
    the saved places of the visible area, the hover/selection state, the
    text search and the place draft. Everything runs on the event loop that
    delivers the map events; no locking is needed.
    """

    def __init__(
        self,
        session_id: str,
        geocoder: GeocodingRepository,
        overpass: OverpassRepository,
        places: PlacesRepository,
        tokens: TokenProvider,
        city_debounce: Optional[float] = None,
        poi_debounce: Optional[float] = None,
        places_debounce: Optional[float] = None,
        search_debounce: Optional[float] = None,
    ):
        self.session_id = session_id
        self.tokens = tokens
        self.places_repo = places
        self.zoom_threshold = settings.POI_ZOOM_THRESHOLD

        self.tracker = ViewportTracker()
        self.city_resolver = CityResolver(geocoder, on_change=self._on_city_changed, debounce=city_debounce)
        self.poi_fetcher = PoiFetchCoordinator(overpass, debounce=poi_debounce)
        self.places_request = DebouncedRequest(
            "saved-places",
            settings.PLACES_DEBOUNCE_SECONDS if places_debounce is None else places_debounce,
        )
        self.photos_request = DebouncedRequest("place-photos")
        self.search = LocationSearch(geocoder, debounce=search_debounce)
        self.address_lookup = AddressLookup(geocoder)

        self.saved_places: List[SavedPlace] = []
        self.places_error: Optional[str] = None
        self.hovered_id: Optional[int] = None
        self.selected_id: Optional[int] = None
        self.draft: Optional[PlaceDraft] = None
        self.photos: List[Photo] = []
        self.photos_error: Optional[str] = None
        self.categories: Optional[List[CategorySummary]] = None

        self.tracker.on_bounds_changed(self._refresh_saved_places)
        self.tracker.on_settled(self._on_viewport_settled)

    @classmethod
    def create(cls, session_id: str, client: httpx.AsyncClient) -> "MapSession":
        tokens = TokenProvider()
        return cls(
            session_id,
            GeocodingRepository(client),
            OverpassRepository(client),
            PlacesRepository(client, tokens),
            tokens,
        )

    @property
    def viewport(self) -> Optional[ViewportState]:
        return self.tracker.viewport

    @property
    def city(self) -> Optional[CityCacheEntry]:
        return self.city_resolver.entry

    # ===== Map events =====

    def move_start(self):
        self.tracker.move_start()

    def move_end(self, center: LatLng, zoom: int, bounds: BoundingBox) -> ViewportState:
        return self.tracker.move_end(center, zoom, bounds)

    def hover(self, place_id: Optional[int]):
        self.hovered_id = place_id

    def select(self, place_id: Optional[int]):
        self.selected_id = place_id
        self._clear_photos()
        if place_id is None:
            return
        self.draft = None
        self.address_lookup.cancel()
        if self.tokens.get_token():
            self.photos_request.schedule(
                lambda: self.places_repo.get_photos(place_id),
                on_success=self._on_photos_loaded,
                on_failure=self._on_photos_failed,
            )

    def _on_viewport_settled(self, viewport: ViewportState):
        self.city_resolver.update(viewport.center, viewport.zoom)
        self.poi_fetcher.update(viewport, self.city_resolver.entry)

    def _on_city_changed(self, entry: Optional[CityCacheEntry]):
        # POIs of the previous city never outlive it
        self.poi_fetcher.clear()
        self.poi_fetcher.update(self.tracker.viewport, entry)

    # ===== Saved places =====

    def _refresh_saved_places(self, bounds: BoundingBox):
        if not self.tokens.get_token():
            return
        bbox = to_bbox_param(bounds)
        self.places_request.schedule(
            lambda: self.places_repo.list_places(bbox=bbox),
            on_success=self._on_places_loaded,
            on_failure=self._on_places_failed,
        )

    def _on_places_loaded(self, places: List[SavedPlace]):
        self.saved_places = places
        self.places_error = None

    def _on_places_failed(self, error: Exception):
        self.places_error = error.message if isinstance(error, PlaceStorageError) else str(error)

    async def get_categories(self) -> List[CategorySummary]:
        if self.categories is None:
            self.categories = await self.places_repo.get_categories()
        return self.categories

    async def focus_place(self, place_id: int) -> ViewTarget:
        place = await self.places_repo.get_place(place_id)
        self.select(place.id)
        if all(existing.id != place.id for existing in self.saved_places):
            self.saved_places = [place] + self.saved_places
        return ViewTarget(center=LatLng(lat=place.lat, lng=place.lng), zoom=FOCUS_ZOOM)

    # ===== Selected place =====

    def _selected_place(self) -> SavedPlace:
        place = next((p for p in self.saved_places if p.id == self.selected_id), None)
        if place is None:
            raise PlaceStorageError(NO_SELECTION_MESSAGE, 404)
        return place

    def _replace_place(self, updated: SavedPlace):
        self.saved_places = [updated if p.id == updated.id else p for p in self.saved_places]

    async def update_selected(self, edits: PlaceUpdate) -> SavedPlace:
        """Save name, notes, address and category edits of the selected place."""
        place = self._selected_place()
        name = (edits.name or "").strip()
        if not name:
            raise PlaceStorageError(NAME_REQUIRED_MESSAGE, 422)

        changes = {"name": name, "notes": (edits.notes or "").strip() or None}
        if "address" in edits.model_fields_set:
            changes["address"] = (edits.address or "").strip() or None
        if edits.category_id is not None:
            changes["category_id"] = edits.category_id
        updated = await self.places_repo.update_place(place.id, PlaceUpdate(**changes))
        self._replace_place(updated)
        return updated

    async def toggle_visited(self) -> SavedPlace:
        place = self._selected_place()
        if place.status == PlaceStatus.PENDING:
            edits = PlaceUpdate(status=PlaceStatus.VISITED, visited_at=datetime.now(timezone.utc))
        else:
            edits = PlaceUpdate(status=PlaceStatus.PENDING, visited_at=None)
        updated = await self.places_repo.update_place(place.id, edits)
        self._replace_place(updated)
        return updated

    async def delete_selected(self):
        place = self._selected_place()
        await self.places_repo.delete_place(place.id)
        logs.log(logging.INFO, f"Deleted place {place.id} '{place.name}' for session {self.session_id}")
        self.saved_places = [p for p in self.saved_places if p.id != place.id]
        if self.hovered_id == place.id:
            self.hovered_id = None
        self.draft = None
        self.select(None)

    def _on_photos_loaded(self, photos: List[Photo]):
        self.photos = photos
        self.photos_error = None

    def _on_photos_failed(self, error: Exception):
        self.photos_error = error.message if isinstance(error, PlaceStorageError) else str(error)

    def _clear_photos(self):
        self.photos_request.reset()
        self.photos = []
        self.photos_error = None

    # ===== Drafts =====

    def start_draft(self, lat: float, lng: float, name: str = "") -> PlaceDraft:
        self.draft = PlaceDraft(lat=lat, lng=lng, name=name, address_loading=True)
        self.selected_id = None
        self._clear_photos()
        self.address_lookup.lookup(lat, lng, self._on_draft_address)
        return self.draft

    def draft_from_poi(self, poi_id: str) -> Optional[DraftResponse]:
        poi = next((p for p in self.poi_fetcher.pois if p.id == poi_id), None)
        if poi is None:
            return None
        draft = self.start_draft(poi.lat, poi.lng, name=poi.name)
        zoom = max(self.viewport.zoom if self.viewport else 0, FOCUS_ZOOM)
        return DraftResponse(draft=draft, target=ViewTarget(center=LatLng(lat=poi.lat, lng=poi.lng), zoom=zoom))

    def _on_draft_address(self, lat: float, lng: float, address: str):
        # Ignore answers for a point the user has already moved away from
        if self.draft is None or self.draft.lat != lat or self.draft.lng != lng:
            return
        self.draft = self.draft.model_copy(update={"address": address, "address_loading": False})

    async def save_draft(self, edits: Optional[PlaceDraft] = None) -> SavedPlace:
        draft = edits or self.draft
        if draft is None:
            raise PlaceStorageError("No hay ningun sitio en borrador", 404)
        if not draft.name.strip():
            raise PlaceStorageError(NAME_REQUIRED_MESSAGE, 422)

        created = await self.places_repo.create_place(PlaceCreate(
            name=draft.name.strip(),
            lat=draft.lat,
            lng=draft.lng,
            status=draft.status,
            notes=draft.notes.strip() or None,
            address=draft.address.strip() or None,
            category_id=draft.category_id,
        ))
        logs.log(logging.INFO, f"Saved place {created.id} '{created.name}' for session {self.session_id}")
        self.draft = None
        self.address_lookup.cancel()
        self.selected_id = created.id
        self._clear_photos()
        self.saved_places = [created] + [p for p in self.saved_places if p.id != created.id]
        if self.viewport is not None:
            self._refresh_saved_places(self.viewport.bounds)
        return created

    # ===== Rendering =====

    def city_status_message(self) -> Optional[str]:
        viewport = self.viewport
        if viewport is None:
            return None
        if viewport.zoom < self.zoom_threshold:
            return ZOOM_HINT_MESSAGE
        city = self.city
        if city is None:
            if self.city_resolver.no_city and not self.city_resolver.in_flight:
                return NO_CITY_MESSAGE
            return None
        if self.poi_fetcher.in_flight:
            return LOADING_MESSAGE
        if self.poi_fetcher.error:
            return self.poi_fetcher.error
        return f"{len(self.poi_fetcher.pois)} sitios en {city.name}"

    def overlay(self) -> MapOverlay:
        zoom = self.viewport.zoom if self.viewport else 0
        return MapOverlay(
            saved_place_markers=project_saved_places(self.saved_places, self.hovered_id, self.selected_id),
            poi_markers=project_pois(self.poi_fetcher.pois, zoom, self.city is not None, self.zoom_threshold),
            city_status_message=self.city_status_message(),
            fetch_in_flight=self.poi_fetcher.in_flight or self.city_resolver.in_flight,
            city_name=self.city.name if self.city else None,
            poi_error=self.poi_fetcher.error,
            places_error=self.places_error,
        )

    # ===== Lifecycle =====

    def _requests(self) -> List[DebouncedRequest]:
        return [
            self.city_resolver.request,
            self.poi_fetcher.request,
            self.places_request,
            self.search.request,
            self.address_lookup.request,
            self.photos_request,
        ]

    async def wait_idle(self):
        """
        Wait until no request of any kind is pending. A finished city
        resolution may start a POI fetch, so loop until everything is quiet.
        """
        while True:
            pending = [r.task for r in self._requests() if r.in_flight]
            if not pending:
                return
            await asyncio.wait(pending)

    def close(self):
        for request in self._requests():
            request.cancel()
