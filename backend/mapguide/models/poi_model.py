from enum import Enum
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from mapguide.models.geo_model import BoundingBox

# --- Enums ---
class PoiKind(str, Enum):
    RESTAURANT = "restaurant"
    BAR = "bar"
    CAFE = "cafe"
    FAST_FOOD = "fast_food"
    MUSEUM = "museum"
    PARK = "park"
    ATTRACTION = "attraction"
    PHARMACY = "pharmacy"
    FUEL = "fuel"
    OTHER = "other"

class RequestState(str, Enum):
    IDLE = "idle"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"
    CANCELED = "canceled"

# --- Domain Models ---
class CityCacheEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    external_id: int
    bounds: BoundingBox

class PoiQueryKey(BaseModel):
    """Identity of a POI query: city plus intersection bounds at 3 decimals."""
    model_config = ConfigDict(frozen=True)

    city_id: int
    min_lat: str
    min_lng: str
    max_lat: str
    max_lng: str

    @classmethod
    def build(cls, city_id: int, bounds: BoundingBox) -> "PoiQueryKey":
        return cls(
            city_id=city_id,
            min_lat=f"{bounds.min_lat:.3f}",
            min_lng=f"{bounds.min_lng:.3f}",
            max_lat=f"{bounds.max_lat:.3f}",
            max_lng=f"{bounds.max_lng:.3f}",
        )

    def __str__(self) -> str:
        return "|".join(
            [str(self.city_id), self.min_lat, self.min_lng, self.max_lat, self.max_lng]
        )

class PoiRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    lat: float
    lng: float
    name: str
    kind: PoiKind
    icon_key: str = Field(..., serialization_alias="iconKey")
    label: str

# --- Overpass wire format ---
class OverpassCenter(BaseModel):
    lat: float
    lon: float

class OverpassElement(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["node", "way", "relation"]
    id: int
    lat: Optional[float] = None
    lon: Optional[float] = None
    center: Optional[OverpassCenter] = None
    tags: Dict[str, str] = {}
