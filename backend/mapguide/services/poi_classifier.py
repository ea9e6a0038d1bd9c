"""
Turns raw Overpass elements into typed, deduplicated POI records.

Classification is an ordered rule table evaluated top to bottom; the first
matching rule wins. The most specific tourism/leisure rules come before the
generic amenity ones, so a museum that also carries ``amenity=restaurant``
stays a museum.
"""
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from mapguide.core.config import settings
from mapguide.models.poi_model import OverpassElement, PoiKind, PoiRecord

FAST_FOOD_BRANDS = ("mcdonald", "burger king")
NAME_TAGS = ("name:es", "name", "brand", "operator", "short_name")

Tags = Dict[str, str]


@dataclass(frozen=True)
class PoiCategory:
    kind: PoiKind
    icon_key: str
    label: str


@dataclass(frozen=True)
class ClassificationRule:
    matches: Callable[[Tags], bool]
    category: PoiCategory


def _tag_in(key: str, *values: str) -> Callable[[Tags], bool]:
    return lambda tags: tags.get(key) in values


def _is_fast_food(tags: Tags) -> bool:
    if tags.get("amenity") == "fast_food":
        return True
    haystack = f"{tags.get('name', '')} {tags.get('brand', '')}".lower()
    return any(brand in haystack for brand in FAST_FOOD_BRANDS)


OTHER = PoiCategory(PoiKind.OTHER, "default", "Sitio")

CLASSIFICATION_RULES: List[ClassificationRule] = [
    ClassificationRule(_tag_in("tourism", "museum", "gallery"), PoiCategory(PoiKind.MUSEUM, "landmark", "Museo")),
    ClassificationRule(_tag_in("tourism", "attraction"), PoiCategory(PoiKind.ATTRACTION, "default", "Atraccion")),
    ClassificationRule(
        _tag_in("leisure", "park", "garden", "recreation_ground"),
        PoiCategory(PoiKind.PARK, "tree", "Parque"),
    ),
    ClassificationRule(_tag_in("amenity", "pharmacy"), PoiCategory(PoiKind.PHARMACY, "pharmacy", "Farmacia")),
    ClassificationRule(_tag_in("amenity", "fuel"), PoiCategory(PoiKind.FUEL, "fuel", "Gasolinera")),
    ClassificationRule(_is_fast_food, PoiCategory(PoiKind.FAST_FOOD, "burger", "Comida rapida")),
    ClassificationRule(_tag_in("amenity", "restaurant"), PoiCategory(PoiKind.RESTAURANT, "wine", "Restaurante")),
    ClassificationRule(_tag_in("amenity", "bar", "pub"), PoiCategory(PoiKind.BAR, "wine", "Bar")),
    ClassificationRule(_tag_in("amenity", "cafe"), PoiCategory(PoiKind.CAFE, "coffee", "Cafe")),
]


def classify(tags: Tags) -> PoiCategory:
    for rule in CLASSIFICATION_RULES:
        if rule.matches(tags):
            return rule.category
    return OTHER


def resolve_name(tags: Tags, label: str) -> str:
    for key in NAME_TAGS:
        value = tags.get(key)
        if value and value.strip():
            return value
    return f"{label} sin nombre"


def element_coordinates(element: OverpassElement) -> Optional[tuple]:
    """Nodes carry their own point; ways and relations use the precomputed center."""
    if element.type == "node":
        if element.lat is None or element.lon is None:
            return None
        return element.lat, element.lon
    if element.center is None:
        return None
    return element.center.lat, element.center.lon


def to_record(element: OverpassElement) -> Optional[PoiRecord]:
    coords = element_coordinates(element)
    if coords is None:
        return None
    category = classify(element.tags)
    return PoiRecord(
        id=f"{element.type}-{element.id}",
        lat=coords[0],
        lng=coords[1],
        name=resolve_name(element.tags, category.label),
        kind=category.kind,
        icon_key=category.icon_key,
        label=category.label,
    )


def dedupe_key(record: PoiRecord) -> str:
    return f"{record.icon_key}|{record.name.lower()}|{record.lat:.4f}|{record.lng:.4f}"


def build_poi_set(elements: Iterable[OverpassElement], limit: Optional[int] = None) -> List[PoiRecord]:
    """
    Classify, drop elements without coordinates, keep the first of each
    duplicate and cap the result. Source order is preserved.
    """
    limit = settings.POI_LIMIT if limit is None else limit
    seen = {}
    for element in elements:
        record = to_record(element)
        if record is None:
            continue
        key = dedupe_key(record)
        if key not in seen:
            seen[key] = record
    return list(seen.values())[:limit]
