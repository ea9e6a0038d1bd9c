import httpx
import logging

from pydantic import ValidationError

from mapguide.core.config import settings
from mapguide.core.errors import NetworkError
from mapguide.core.logger import logs
from mapguide.models.geo_model import BoundingBox
from mapguide.models.poi_model import OverpassElement

# (tag key, value regex, case-insensitive)
POI_TAG_FILTERS = [
    ("amenity", "restaurant|bar|pub|cafe|fast_food|pharmacy|fuel", False),
    ("tourism", "museum|gallery|attraction", False),
    ("leisure", "park|garden|recreation_ground", False),
    ("brand", "McDonald's|McDonalds|Burger King", True),
    ("name", "McDonald's|McDonalds|Burger King", True),
]

def build_overpass_query(bounds: BoundingBox, timeout: int = 25) -> str:
    """Union of nodes/ways/relations matching the POI allow-list, scoped to ``bounds``."""
    bbox = f"{bounds.min_lat},{bounds.min_lng},{bounds.max_lat},{bounds.max_lng}"
    lines = [f"[out:json][timeout:{timeout}];", "("]
    for key, pattern, ignore_case in POI_TAG_FILTERS:
        flag = ",i" if ignore_case else ""
        for element_type in ("node", "way", "relation"):
            lines.append(f'  {element_type}["{key}"~"{pattern}"{flag}]({bbox});')
    lines.append(");")
    lines.append("out center;")
    return "\n".join(lines)

class OverpassRepository:
    def __init__(self, client: httpx.AsyncClient, url: str | None = None):
        self.client = client
        self.overpass_url = url or settings.OVERPASS_URL

    async def fetch_elements(self, bounds: BoundingBox) -> list[OverpassElement]:
        query = build_overpass_query(bounds)
        try:
            response = await self.client.post(self.overpass_url, data={"data": query})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logs.log(logging.ERROR, f"Overpass API answered {e.response.status_code}")
            raise NetworkError("Overpass request failed", e.response.status_code) from e
        except httpx.HTTPError as e:
            logs.log(logging.ERROR, f"Overpass API failed: {str(e)}")
            raise NetworkError("Overpass unreachable") from e
        except ValueError as e:
            raise NetworkError("Overpass sent invalid JSON") from e

        if not isinstance(data, dict):
            raise NetworkError("Unexpected Overpass payload")

        elements = []
        for raw in data.get("elements", []):
            try:
                elements.append(OverpassElement.model_validate(raw))
            except ValidationError:
                # Unknown element shapes are skipped, not fatal
                continue
        return elements
