import httpx
import logging
from typing import Any

from mapguide.core.config import settings
from mapguide.core.errors import NetworkError
from mapguide.core.logger import logs

class GeocodingRepository:
    """
    Nominatim client: reverse geocoding (city resolution, address autofill)
    and free-text search.
    """
    def __init__(self, client: httpx.AsyncClient, base_url: str | None = None):
        self.client = client
        self.base_url = (base_url or settings.NOMINATIM_URL).rstrip("/")

    async def reverse(self, lat: float, lng: float, zoom: int) -> dict:
        """
        Reverse-geocode a point. ``zoom`` is Nominatim's detail level:
        10 yields the enclosing city, 18 a street address.
        """
        params = {
            "format": "jsonv2",
            "zoom": zoom,
            "addressdetails": 1,
            "lat": lat,
            "lon": lng,
        }
        data = await self._get_json("/reverse", params)
        if not isinstance(data, dict):
            raise NetworkError("Unexpected reverse geocoding payload")
        return data

    async def search(self, query: str, limit: int | None = None) -> list[dict]:
        params = {
            "format": "jsonv2",
            "addressdetails": 1,
            "limit": limit or settings.SEARCH_LIMIT,
            "dedupe": 1,
            "q": query,
        }
        if settings.SEARCH_COUNTRY_CODES:
            params["countrycodes"] = settings.SEARCH_COUNTRY_CODES
        data = await self._get_json("/search", params)
        if not isinstance(data, list):
            raise NetworkError("Unexpected search payload")
        return data

    async def _get_json(self, path: str, params: dict) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = await self.client.get(url, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            logs.log(logging.ERROR, f"Nominatim {path} answered {e.response.status_code}")
            raise NetworkError(f"Nominatim {path} failed", e.response.status_code) from e
        except httpx.HTTPError as e:
            logs.log(logging.ERROR, f"Nominatim {path} unreachable: {str(e)}")
            raise NetworkError(f"Nominatim {path} unreachable") from e
        except ValueError as e:
            raise NetworkError(f"Nominatim {path} sent invalid JSON") from e
