"""Nearby hospital search: resilient fetching, geocoding and distance ranking."""

from hospital_search.config import SearchSettings, load_search_settings
from hospital_search.core.exceptions import (
    GeocodingUnavailable,
    GeodataUnavailable,
    InvalidInput,
    NoResultsInRadius,
    PlaceNotFound,
    SearchError,
    SearchTimedOut,
    UnexpectedFailure,
)
from hospital_search.core.fetch import ResilientFetcher
from hospital_search.core.models import FacilityRecord, SearchPhase, SearchResult, SearchStatus
from hospital_search.gate import LatestSearchGate
from hospital_search.search import HospitalSearchService, rank_facilities

__all__ = [
    "FacilityRecord",
    "GeocodingUnavailable",
    "GeodataUnavailable",
    "HospitalSearchService",
    "InvalidInput",
    "LatestSearchGate",
    "NoResultsInRadius",
    "PlaceNotFound",
    "ResilientFetcher",
    "SearchError",
    "SearchPhase",
    "SearchResult",
    "SearchSettings",
    "SearchStatus",
    "SearchTimedOut",
    "UnexpectedFailure",
    "load_search_settings",
    "rank_facilities",
]
