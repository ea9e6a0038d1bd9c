"""
Pytest configuration for the map engine tests.

Collaborators (Nominatim, Overpass, place storage) are faked with a single
httpx.MockTransport handler that records every request it sees.
"""
import json
import os
import tempfile
from urllib.parse import parse_qs

# Must run before mapguide.core.config is imported
os.environ.setdefault("LOG_DIRECTORY", os.path.join(tempfile.gettempdir(), "mapguide-test-logs"))
os.environ.setdefault("LOGGER", "30")

import httpx
import pytest

from mapguide.core.token_provider import TokenProvider
from mapguide.models.geo_model import BoundingBox, LatLng
from mapguide.repos.geocoding_repo import GeocodingRepository
from mapguide.repos.overpass_repo import OverpassRepository
from mapguide.repos.places_repo import PlacesRepository
from mapguide.services.map_session import MapSession

NOMINATIM_URL = "https://nominatim.test"
OVERPASS_URL = "https://overpass.test/api/interpreter"
PLACES_URL = "https://places.test"

GRANADA_REVERSE = {
    "place_id": 4242,
    "display_name": "Granada, Andalucia, Espana",
    "boundingbox": ["37.1", "37.2", "-3.65", "-3.55"],
    "address": {"city": "Granada", "country_code": "es"},
}

ADDRESS_REVERSE = {
    "place_id": 9001,
    "display_name": "Calle Reyes Catolicos 1, Granada",
    "boundingbox": ["37.1760", "37.1770", "-3.5990", "-3.5980"],
    "address": {"road": "Calle Reyes Catolicos", "city": "Granada"},
}

GRANADA_ELEMENTS = {
    "elements": [
        {"type": "node", "id": 1, "lat": 37.1761, "lon": -3.5881,
         "tags": {"tourism": "museum", "amenity": "restaurant", "name": "Museo de la Alhambra"}},
        {"type": "way", "id": 2, "center": {"lat": 37.1702, "lon": -3.5890},
         "tags": {"leisure": "park", "name": "Jardines del Triunfo"}},
    ]
}


def bounds(min_lat, max_lat, min_lng, max_lng) -> BoundingBox:
    return BoundingBox(min_lat=min_lat, max_lat=max_lat, min_lng=min_lng, max_lng=max_lng)


GRANADA_CENTER = LatLng(lat=37.1773, lng=-3.5986)
GRANADA_VIEWPORT = bounds(37.15, 37.19, -3.60, -3.58)


def overpass_query(request: httpx.Request) -> str:
    """The Overpass QL sent in the ``data`` form field."""
    return parse_qs(request.content.decode())["data"][0]


class FakeBackend:
    """Answers every collaborator call and keeps a log of them by kind."""

    def __init__(self):
        self.requests = []
        self.failing = set()
        self.reverse_payload = GRANADA_REVERSE
        self.address_payload = ADDRESS_REVERSE
        self.search_payload = []
        self.overpass_payload = GRANADA_ELEMENTS
        self.places_payload = []
        self.next_place_id = 100
        # "METHOD /path" -> (status, json) for any other place-storage call
        self.routes = {}

    def calls(self, kind):
        return [request for k, request in self.requests if k == kind]

    def count(self, kind) -> int:
        return len(self.calls(kind))

    def _kind(self, request: httpx.Request) -> str:
        host, path = request.url.host, request.url.path
        if host == "nominatim.test":
            if path == "/reverse":
                return "address" if request.url.params.get("zoom") == "18" else "reverse"
            return "search"
        if host == "overpass.test":
            return "overpass"
        if path == "/api/places" and request.method == "POST":
            return "create"
        if path == "/api/places":
            return "places"
        return f"{request.method} {path}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        kind = self._kind(request)
        self.requests.append((kind, request))
        if kind in self.failing:
            return httpx.Response(503, json={"message": "Servicio no disponible"})
        if kind == "reverse":
            return httpx.Response(200, json=self.reverse_payload)
        if kind == "address":
            return httpx.Response(200, json=self.address_payload)
        if kind == "search":
            return httpx.Response(200, json=self.search_payload)
        if kind == "overpass":
            return httpx.Response(200, json=self.overpass_payload)
        if kind == "places":
            return httpx.Response(200, json=self.places_payload)
        if kind == "create":
            body = json.loads(request.content)
            self.next_place_id += 1
            return httpx.Response(201, json={"id": self.next_place_id, **body})
        if kind in self.routes:
            status, payload = self.routes[kind]
            return httpx.Response(status, json=payload)
        return httpx.Response(404, json={"message": "No encontrado"})


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def http_client(backend):
    return httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))


@pytest.fixture
def geocoder(http_client):
    return GeocodingRepository(http_client, base_url=NOMINATIM_URL)


@pytest.fixture
def overpass(http_client):
    return OverpassRepository(http_client, url=OVERPASS_URL)


@pytest.fixture
def tokens():
    return TokenProvider()


@pytest.fixture
def places_repo(http_client, tokens):
    return PlacesRepository(http_client, tokens, base_url=PLACES_URL)


@pytest.fixture
def make_session(geocoder, overpass, places_repo, tokens):
    """Build a MapSession over the fake backend with short debounce intervals."""
    def factory(session_id="test", debounce=0.01):
        return MapSession(
            session_id,
            geocoder,
            overpass,
            places_repo,
            tokens,
            city_debounce=debounce,
            poi_debounce=debounce,
            places_debounce=debounce,
            search_debounce=debounce,
        )
    return factory
