from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx

from geo_engine.models import Coordinate

from hospital_search.core.exceptions import MalformedPayloadError
from hospital_search.core.models import FacilityRecord
from hospital_search.providers._coerce import to_finite_float

ELEMENT_TYPES = ("node", "way", "relation")


def build_facility_query(
    origin: Coordinate,
    radius_meters: int,
    amenities: Sequence[str] = ("hospital", "clinic"),
    server_timeout_seconds: int = 30,
) -> str:
    """
    Overpass QL for every element type carrying one of *amenities* around *origin*.

    ``out center`` makes ways and relations report a centroid.
    """
    around = f"(around:{radius_meters},{origin.latitude},{origin.longitude})"
    clauses = [
        f'  {element_type}["amenity"="{amenity}"]{around};'
        for amenity in amenities
        for element_type in ELEMENT_TYPES
    ]
    lines = [f"[out:json][timeout:{server_timeout_seconds}];", "(", *clauses, ");", "out center;"]
    return "\n".join(lines)


def build_geodata_endpoints(query: str, base_urls: Sequence[str]) -> list[str]:
    return [str(httpx.URL(base_url, params={"data": query})) for base_url in base_urls]


def extract_elements(payload: Any) -> list[Any]:
    if not isinstance(payload, dict):
        raise MalformedPayloadError("geodata payload is not a json object")
    elements = payload.get("elements", [])
    if not isinstance(elements, list):
        raise MalformedPayloadError("geodata payload field 'elements' is not a list")
    return elements


def _resolve_coordinate(element: dict[str, Any]) -> Coordinate | None:
    lat = element.get("lat")
    lon = element.get("lon")
    center = element.get("center")
    if isinstance(center, dict):
        if lat is None:
            lat = center.get("lat")
        if lon is None:
            lon = center.get("lon")
    latitude = to_finite_float(lat)
    longitude = to_finite_float(lon)
    if latitude is None or longitude is None:
        return None
    return Coordinate(latitude=latitude, longitude=longitude)


def parse_facility(element: Any) -> FacilityRecord | None:
    if not isinstance(element, dict):
        return None
    coordinate = _resolve_coordinate(element)
    if coordinate is None:
        return None
    raw_tags = element.get("tags") or {}
    tags = {str(key): str(value) for key, value in raw_tags.items()} if isinstance(raw_tags, dict) else {}
    return FacilityRecord(
        id=str(element.get("id", "")),
        osm_type=str(element.get("type", "node")),
        name=tags.get("name"),
        coordinate=coordinate,
        tags=tags,
    )
