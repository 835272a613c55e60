"""Geo engine core package."""

from geo_engine.distance import EARTH_RADIUS_KM, haversine_distance_km
from geo_engine.models import Coordinate

__all__ = [
    "Coordinate",
    "EARTH_RADIUS_KM",
    "haversine_distance_km",
]
