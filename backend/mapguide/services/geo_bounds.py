"""
Bounding-box math shared by every stage of the POI pipeline.

Pure functions only: no I/O, no logging, no state.
"""
import math
from typing import Optional, Sequence

from pydantic import ValidationError

from mapguide.core.errors import ParseError
from mapguide.models.geo_model import BoundingBox, LatLng


def parse_bounds(raw: Sequence[str]) -> BoundingBox:
    """
    Parse a Nominatim ``boundingbox`` (south, north, west, east as strings).

    Raises ParseError when the tuple has the wrong arity, a coordinate is not
    a finite number, or the resulting box is degenerate.
    """
    if raw is None or len(raw) != 4:
        raise ParseError(f"expected 4 bounding box coordinates, got {raw!r}")
    try:
        south, north, west, east = (float(value) for value in raw)
    except (TypeError, ValueError) as e:
        raise ParseError(f"non-numeric bounding box {raw!r}") from e
    if not all(math.isfinite(value) for value in (south, north, west, east)):
        raise ParseError(f"non-finite bounding box {raw!r}")
    try:
        return BoundingBox(min_lat=south, max_lat=north, min_lng=west, max_lng=east)
    except ValidationError as e:
        raise ParseError(f"degenerate bounding box {raw!r}") from e


def contains(point: LatLng, box: BoundingBox) -> bool:
    """Inclusive on all four edges."""
    return (
        box.min_lat <= point.lat <= box.max_lat
        and box.min_lng <= point.lng <= box.max_lng
    )


def intersect(a: BoundingBox, b: BoundingBox) -> Optional[BoundingBox]:
    min_lat = max(a.min_lat, b.min_lat)
    max_lat = min(a.max_lat, b.max_lat)
    min_lng = max(a.min_lng, b.min_lng)
    max_lng = min(a.max_lng, b.max_lng)
    if min_lat >= max_lat or min_lng >= max_lng:
        return None
    return BoundingBox(min_lat=min_lat, max_lat=max_lat, min_lng=min_lng, max_lng=max_lng)


def center_of(box: BoundingBox) -> LatLng:
    return LatLng(lat=(box.min_lat + box.max_lat) / 2, lng=(box.min_lng + box.max_lng) / 2)


def to_bbox_param(box: BoundingBox) -> str:
    """Place-storage ``bbox`` query value: west,south,east,north."""
    return f"{box.min_lng},{box.min_lat},{box.max_lng},{box.max_lat}"
