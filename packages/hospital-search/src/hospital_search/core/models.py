from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from geo_engine.models import Coordinate

ADDRESS_TAG_KEYS = (
    "addr:housename",
    "addr:housenumber",
    "addr:street",
    "addr:city",
    "addr:state",
    "addr:postcode",
)


@dataclass(frozen=True)
class RequestOptions:
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    data: Mapping[str, str] | None = None


@dataclass(frozen=True)
class FetchSuccess:
    data: Any
    source_url: str


def _first_tag(tags: Mapping[str, str], *keys: str) -> str | None:
    for key in keys:
        value = tags.get(key)
        if value:
            return value
    return None


@dataclass(frozen=True)
class FacilityRecord:
    id: str
    osm_type: str
    name: str | None
    coordinate: Coordinate
    tags: Mapping[str, str] = field(default_factory=dict)
    distance_km: float | None = None

    @property
    def display_name(self) -> str | None:
        return self.name or _first_tag(self.tags, "ref")

    @property
    def phone(self) -> str | None:
        return _first_tag(self.tags, "phone", "contact:phone", "telephone")

    @property
    def website(self) -> str | None:
        return _first_tag(self.tags, "website", "contact:website")

    @property
    def opening_hours(self) -> str | None:
        return _first_tag(self.tags, "opening_hours")

    @property
    def address(self) -> str | None:
        parts = [self.tags[key] for key in ADDRESS_TAG_KEYS if self.tags.get(key)]
        if parts:
            return ", ".join(parts)
        return _first_tag(self.tags, "address")


@dataclass(frozen=True)
class SearchResult:
    place_name: str
    origin: Coordinate
    radius_meters: int
    facilities: list[FacilityRecord]
    total: int
    geodata_source: str

    @property
    def shown(self) -> int:
        return len(self.facilities)


class SearchPhase(str, Enum):
    GEOCODING = "geocoding"
    SEARCHING = "searching"
    FOUND = "found"


@dataclass(frozen=True)
class SearchStatus:
    phase: SearchPhase
    message: str
