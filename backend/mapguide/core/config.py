from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    LOGGER: int = 20
    LOG_DIRECTORY: str = "logs"
    LOG_FILE: str = "mapguide.log"
    LOG_MAX_BYTES: int = 10 * 1024 * 1024
    LOG_BACKUPS: int = 5

    # Collaborators
    NOMINATIM_URL: str = "https://nominatim.openstreetmap.org"
    OVERPASS_URL: str = "https://overpass-api.de/api/interpreter"
    PLACES_API_URL: str = "http://localhost:8080"
    USER_AGENT: str = "GranadaGuide/1.0"
    # Socket-level guard only; Overpass enforces its own [timeout:25]
    HTTP_TIMEOUT: float = 30.0

    # POI engine
    POI_ZOOM_THRESHOLD: int = 15
    POI_LIMIT: int = 180
    CITY_DETAIL_ZOOM: int = 10
    ADDRESS_DETAIL_ZOOM: int = 18

    # Debounce intervals (seconds)
    CITY_DEBOUNCE_SECONDS: float = 0.45
    POI_DEBOUNCE_SECONDS: float = 0.5
    PLACES_DEBOUNCE_SECONDS: float = 0.3
    SEARCH_DEBOUNCE_SECONDS: float = 0.35
    ADDRESS_DEBOUNCE_SECONDS: float = 0.0

    # Text search
    SEARCH_MIN_LENGTH: int = 2
    SEARCH_COUNTRY_CODES: str = "es"
    SEARCH_LIMIT: int = 8

    # Map sessions untouched for this long are dropped
    SESSION_IDLE_SECONDS: float = 1800.0

    model_config = SettingsConfigDict(
        # Look for .env in the current folder OR the parent folder
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
