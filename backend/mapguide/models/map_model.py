from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mapguide.models.geo_model import BoundingBox, LatLng
from mapguide.models.places_model import PlaceStatus

class CamelModel(BaseModel):
    """Models sent to the browser map client use camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# --- Enums ---
class MarkerKind(str, Enum):
    SAVED = "saved"
    POI = "poi"

# --- Render Models ---
class MarkerDescriptor(CamelModel):
    marker_id: str
    kind: MarkerKind
    lat: float
    lng: float
    icon_key: str
    label: str
    category_label: Optional[str] = None
    status: Optional[PlaceStatus] = None
    z_index_offset: int = 0
    clusterable: bool = True
    highlighted: bool = False

class MapOverlay(CamelModel):
    saved_place_markers: List[MarkerDescriptor] = []
    poi_markers: List[MarkerDescriptor] = []
    city_status_message: Optional[str] = None
    fetch_in_flight: bool = False
    city_name: Optional[str] = None
    poi_error: Optional[str] = None
    places_error: Optional[str] = None

# --- API Request Models ---
class ViewportRequest(CamelModel):
    center: LatLng
    zoom: int = Field(..., ge=0, le=22)
    bounds: BoundingBox

class HoverRequest(CamelModel):
    place_id: Optional[int] = None

class SelectRequest(CamelModel):
    place_id: Optional[int] = None

class SearchRequest(CamelModel):
    query: str = ""

class ApplySearchRequest(CamelModel):
    index: int = 0

# --- Search / Navigation ---
class SearchResult(CamelModel):
    place_id: int
    display_name: str
    point: LatLng
    bounds: Optional[BoundingBox] = None
    type: Optional[str] = None

class SearchState(CamelModel):
    query: str = ""
    results: List[SearchResult] = []
    loading: bool = False
    error: Optional[str] = None

class ViewTarget(CamelModel):
    """Either fly to center/zoom or fit bounds."""
    center: Optional[LatLng] = None
    zoom: Optional[int] = None
    bounds: Optional[BoundingBox] = None

# --- Drafts ---
class PlaceDraft(CamelModel):
    lat: float
    lng: float
    name: str = ""
    status: PlaceStatus = PlaceStatus.PENDING
    notes: str = ""
    address: str = ""
    category_id: Optional[int] = None
    address_loading: bool = False

class DraftResponse(CamelModel):
    draft: Optional[PlaceDraft] = None
    target: Optional[ViewTarget] = None
