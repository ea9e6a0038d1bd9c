import httpx
import logging
from typing import Any, Optional

from mapguide.core.config import settings
from mapguide.core.errors import PlaceStorageError
from mapguide.core.logger import logs
from mapguide.core.token_provider import TokenProvider
from mapguide.models.places_model import (
    CategorySummary,
    Photo,
    PlaceCreate,
    PlacePage,
    PlaceUpdate,
    SavedPlace,
)

DEFAULT_ERROR_MESSAGE = "No se pudo completar la solicitud"

class PlacesRepository:
    """
    Client for the place-storage API. Every call carries the bearer token
    from the session's TokenProvider.
    """
    def __init__(
        self,
        client: httpx.AsyncClient,
        tokens: TokenProvider,
        base_url: str | None = None,
    ):
        self.client = client
        self.tokens = tokens
        self.base_url = (base_url or settings.PLACES_API_URL).rstrip("/")

    # ===== Places =====

    async def list_places(self, bbox: Optional[str] = None, status: Optional[str] = None) -> list[SavedPlace]:
        """
        Places inside ``bbox`` (west,south,east,north). The API answers either
        a bare list or a Spring page; both are accepted.
        """
        params = {}
        if bbox:
            params["bbox"] = bbox
        if status:
            params["status"] = status
        data = await self._request("GET", "/api/places", params=params)
        if isinstance(data, dict):
            return PlacePage.model_validate(data).content
        return [SavedPlace.model_validate(item) for item in data or []]

    async def get_place(self, place_id: int) -> SavedPlace:
        data = await self._request("GET", f"/api/places/{place_id}")
        return SavedPlace.model_validate(data)

    async def create_place(self, payload: PlaceCreate) -> SavedPlace:
        data = await self._request(
            "POST", "/api/places", json=payload.model_dump(by_alias=True, exclude_none=True, mode="json")
        )
        return SavedPlace.model_validate(data)

    async def update_place(self, place_id: int, payload: PlaceUpdate) -> SavedPlace:
        data = await self._request(
            "PATCH",
            f"/api/places/{place_id}",
            json=payload.model_dump(by_alias=True, exclude_unset=True, mode="json"),
        )
        return SavedPlace.model_validate(data)

    async def delete_place(self, place_id: int) -> None:
        await self._request("DELETE", f"/api/places/{place_id}")

    async def get_categories(self) -> list[CategorySummary]:
        data = await self._request("GET", "/api/categories")
        return [CategorySummary.model_validate(item) for item in data or []]

    # ===== Photos =====

    async def get_photos(self, place_id: int) -> list[Photo]:
        data = await self._request("GET", f"/api/places/{place_id}/photos")
        return [Photo.model_validate(item) for item in data or []]

    # ===== Transport =====

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = await self.client.request(method, url, headers=self.tokens.auth_headers(), **kwargs)
        except httpx.HTTPError as e:
            logs.log(logging.ERROR, f"Place storage unreachable ({method} {path}): {str(e)}")
            raise PlaceStorageError(DEFAULT_ERROR_MESSAGE, 502) from e

        if resp.is_error:
            message = self._error_message(resp)
            logs.log(logging.WARNING, f"Place storage {method} {path} -> {resp.status_code}: {message}")
            raise PlaceStorageError(message, resp.status_code)

        if resp.status_code == 204 or not resp.content:
            return None
        if "application/json" in resp.headers.get("content-type", ""):
            return resp.json()
        return resp.text

    def _error_message(self, resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.reason_phrase or DEFAULT_ERROR_MESSAGE
        if isinstance(body, dict) and body.get("message"):
            return body["message"]
        return DEFAULT_ERROR_MESSAGE
