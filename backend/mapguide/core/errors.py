"""
Error taxonomy of the map engine.

Everything raised inside the city/POI pipeline is caught at the component
boundary and turned into local state; only PlaceStorageError reaches the
HTTP layer, where routes translate it into an HTTPException.
"""


class MapEngineError(Exception):
    """Base class for map engine failures."""


class ParseError(MapEngineError):
    """A collaborator returned a bounding box we cannot use."""


class NetworkError(MapEngineError):
    """A collaborator was unreachable, answered non-OK, or sent an undecodable body."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NoCityResolved(MapEngineError):
    """Reverse geocoding answered, but without a usable city name or bounds."""


class PlaceStorageError(MapEngineError):
    """The place-storage API rejected a request."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
