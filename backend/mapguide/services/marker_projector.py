"""
Projects saved places and discovered POIs into renderable marker descriptors.
Pure: the same inputs always give the same overlay.
"""
from typing import Iterable, List, Optional

from mapguide.core.config import settings
from mapguide.models.map_model import MarkerDescriptor, MarkerKind
from mapguide.models.places_model import SavedPlace
from mapguide.models.poi_model import PoiRecord

KNOWN_ICON_KEYS = frozenset({
    "utensils", "wine", "coffee", "burger", "pharmacy", "fuel", "landmark",
    "tree", "binoculars", "walking", "umbrella-beach", "default",
})
DEFAULT_ICON_KEY = "default"

POI_Z_INDEX_OFFSET = -200
HIGHLIGHT_Z_INDEX_OFFSET = 1000


def resolve_icon_key(icon: Optional[str]) -> str:
    if not icon:
        return DEFAULT_ICON_KEY
    return icon if icon in KNOWN_ICON_KEYS else DEFAULT_ICON_KEY


def project_saved_places(
    places: Iterable[SavedPlace],
    hovered_id: Optional[int] = None,
    selected_id: Optional[int] = None,
) -> List[MarkerDescriptor]:
    markers = []
    for place in places:
        highlighted = place.id in (hovered_id, selected_id)
        markers.append(MarkerDescriptor(
            marker_id=f"place-{place.id}",
            kind=MarkerKind.SAVED,
            lat=place.lat,
            lng=place.lng,
            icon_key=resolve_icon_key(place.category.icon if place.category else None),
            label=place.name,
            category_label=place.category.name if place.category else None,
            status=place.status,
            z_index_offset=HIGHLIGHT_Z_INDEX_OFFSET if highlighted else 0,
            clusterable=True,
            highlighted=highlighted,
        ))
    return markers


def project_pois(
    pois: Iterable[PoiRecord],
    zoom: int,
    city_resolved: bool,
    zoom_threshold: Optional[int] = None,
) -> List[MarkerDescriptor]:
    """POI markers sit under saved places; clustering is off from the POI zoom on."""
    zoom_threshold = settings.POI_ZOOM_THRESHOLD if zoom_threshold is None else zoom_threshold
    if zoom < zoom_threshold or not city_resolved:
        return []
    return [
        MarkerDescriptor(
            marker_id=f"poi-{poi.id}",
            kind=MarkerKind.POI,
            lat=poi.lat,
            lng=poi.lng,
            icon_key=poi.icon_key,
            label=poi.name,
            category_label=poi.label,
            z_index_offset=POI_Z_INDEX_OFFSET,
            clusterable=False,
        )
        for poi in pois
    ]
