"""Endpoint builders and payload parsers for the geocoding and geodata services."""

from hospital_search.providers.geocoding import (
    build_geocoding_endpoints,
    build_geocoding_query,
    parse_origin,
)
from hospital_search.providers.overpass import (
    build_facility_query,
    build_geodata_endpoints,
    extract_elements,
    parse_facility,
)

__all__ = [
    "build_facility_query",
    "build_geocoding_endpoints",
    "build_geocoding_query",
    "build_geodata_endpoints",
    "extract_elements",
    "parse_facility",
    "parse_origin",
]
