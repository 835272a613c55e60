from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = "HospitalLocator/0.1 (nearby hospital search)"


class SearchSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LOCATOR_", extra="ignore", frozen=True)

    SEARCH_RADIUS_METERS: int = 15_000
    RESULT_LIMIT: int = 30
    GEOCODE_MAX_ATTEMPTS: int = 2
    GEODATA_MAX_ATTEMPTS: int = 3
    BACKOFF_BASE_SECONDS: float = 0.5
    REGION_QUALIFIER: str = "Tamil Nadu, India"
    FACILITY_AMENITIES: tuple[str, ...] = ("hospital", "clinic")
    GEOCODING_ENDPOINTS: tuple[str, ...] = (
        "https://nominatim.openstreetmap.org/search",
        "https://geocode.maps.co/search",
    )
    GEODATA_ENDPOINTS: tuple[str, ...] = (
        "https://overpass-api.de/api/interpreter",
        "https://overpass.kumi.systems/api/interpreter",
    )
    GEODATA_SERVER_TIMEOUT_SECONDS: int = 30
    REQUEST_TIMEOUT_SECONDS: float = 20.0
    SEARCH_TIMEOUT_SECONDS: float = 90.0
    USER_AGENT: str = DEFAULT_USER_AGENT


def load_search_settings() -> SearchSettings:
    return SearchSettings()
