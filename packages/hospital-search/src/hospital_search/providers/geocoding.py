from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx

from geo_engine.models import Coordinate

from hospital_search.providers._coerce import to_finite_float


def build_geocoding_query(place_name: str, region_qualifier: str) -> str:
    if not region_qualifier:
        return place_name
    return f"{place_name}, {region_qualifier}"


def build_geocoding_endpoints(query: str, base_urls: Sequence[str]) -> list[str]:
    """Primary endpoint speaks the Nominatim dialect, alternates the maps.co one."""
    endpoints: list[str] = []
    for index, base_url in enumerate(base_urls):
        if index == 0:
            params = {"format": "json", "limit": 1, "q": query}
        else:
            params = {"q": query, "limit": 1}
        endpoints.append(str(httpx.URL(base_url, params=params)))
    return endpoints


def parse_origin(payload: Any) -> Coordinate | None:
    if not isinstance(payload, list) or not payload:
        return None
    candidate = payload[0]
    if not isinstance(candidate, dict):
        return None
    lat = to_finite_float(candidate.get("lat"))
    lon = to_finite_float(candidate.get("lon"))
    if lat is None or lon is None:
        return None
    return Coordinate(latitude=lat, longitude=lon)
