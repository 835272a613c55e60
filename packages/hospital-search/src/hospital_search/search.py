from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Sequence
from typing import Any

from geo_engine.distance import haversine_distance_km
from geo_engine.models import Coordinate

from hospital_search.config import SearchSettings, load_search_settings
from hospital_search.core.exceptions import (
    FetchExhaustedError,
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
from hospital_search.core.metrics import InMemorySearchMetricsCollector
from hospital_search.core.models import (
    FacilityRecord,
    FetchSuccess,
    RequestOptions,
    SearchPhase,
    SearchResult,
    SearchStatus,
)
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

StatusCallback = Callable[[SearchStatus], None]
logger = logging.getLogger(__name__)

SUCCESS_OUTCOME = "SUCCESS"


def rank_facilities(origin: Coordinate, elements: Sequence[Any]) -> list[FacilityRecord]:
    """Parse *elements*, drop unresolvable ones and sort the rest nearest first."""
    ranked: list[FacilityRecord] = []
    for element in elements:
        record = parse_facility(element)
        if record is None:
            continue
        distance_km = haversine_distance_km(origin, record.coordinate)
        ranked.append(dataclasses.replace(record, distance_km=distance_km))
    ranked.sort(key=lambda record: record.distance_km)
    return ranked


class HospitalSearchService:
    def __init__(
        self,
        settings: SearchSettings | None = None,
        fetcher: ResilientFetcher | None = None,
        metrics: InMemorySearchMetricsCollector | None = None,
    ) -> None:
        self._settings = settings or load_search_settings()
        self._metrics = metrics
        self._fetcher = fetcher or ResilientFetcher(
            base_delay_seconds=self._settings.BACKOFF_BASE_SECONDS,
            timeout_seconds=self._settings.REQUEST_TIMEOUT_SECONDS,
            metrics=metrics,
        )

    @property
    def settings(self) -> SearchSettings:
        return self._settings

    async def search(self, place_name: str, on_status: StatusCallback | None = None) -> SearchResult:
        """
        Geocode *place_name*, fetch nearby facilities and rank them by distance.

        Raises a SearchError subclass on every failure path; raw network
        errors never escape.
        """
        place = (place_name or "").strip()
        if not place:
            self._record_outcome(InvalidInput.code)
            raise InvalidInput()

        try:
            result = await asyncio.wait_for(
                self._run_pipeline(place, on_status),
                timeout=self._settings.SEARCH_TIMEOUT_SECONDS,
            )
        except SearchError as exc:
            self._record_outcome(exc.code)
            raise
        except TimeoutError as exc:
            logger.warning(
                "search_timed_out",
                extra={"place": place, "timeout_seconds": self._settings.SEARCH_TIMEOUT_SECONDS},
            )
            self._record_outcome(SearchTimedOut.code)
            raise SearchTimedOut() from exc
        except Exception as exc:
            logger.exception("search_failed", extra={"place": place})
            self._record_outcome(UnexpectedFailure.code)
            raise UnexpectedFailure() from exc
        self._record_outcome(SUCCESS_OUTCOME)
        return result

    async def _run_pipeline(self, place: str, on_status: StatusCallback | None) -> SearchResult:
        self._notify(on_status, SearchPhase.GEOCODING, "Geocoding place...")
        origin = await self._geocode(place)

        self._notify(
            on_status,
            SearchPhase.SEARCHING,
            f"Searching hospitals around {place} (lat {origin.latitude:.4f}, lon {origin.longitude:.4f})...",
        )
        fetched = await self._fetch_geodata(place, origin)

        ranked = rank_facilities(origin, extract_elements(fetched.data))
        radius_meters = self._settings.SEARCH_RADIUS_METERS
        if not ranked:
            raise NoResultsInRadius(place, radius_meters)

        result = SearchResult(
            place_name=place,
            origin=origin,
            radius_meters=radius_meters,
            facilities=ranked[: self._settings.RESULT_LIMIT],
            total=len(ranked),
            geodata_source=fetched.source_url,
        )
        self._notify(
            on_status,
            SearchPhase.FOUND,
            f"Found {result.total} items; showing nearest {result.shown}.",
        )
        logger.info(
            "search_completed",
            extra={
                "place": place,
                "total": result.total,
                "shown": result.shown,
                "geodata_source": fetched.source_url,
            },
        )
        return result

    async def _geocode(self, place: str) -> Coordinate:
        query = build_geocoding_query(place, self._settings.REGION_QUALIFIER)
        endpoints = build_geocoding_endpoints(query, self._settings.GEOCODING_ENDPOINTS)
        try:
            fetched = await self._fetcher.fetch_json(
                endpoints,
                self._request_options(accept_json=True),
                max_attempts_per_endpoint=self._settings.GEOCODE_MAX_ATTEMPTS,
            )
        except FetchExhaustedError as exc:
            logger.error("geocoding_unavailable", extra={"place": place, "error": str(exc.last_error)})
            raise GeocodingUnavailable() from exc

        origin = parse_origin(fetched.data)
        if origin is None:
            raise PlaceNotFound(place)
        return origin

    async def _fetch_geodata(self, place: str, origin: Coordinate) -> FetchSuccess:
        query = build_facility_query(
            origin,
            radius_meters=self._settings.SEARCH_RADIUS_METERS,
            amenities=self._settings.FACILITY_AMENITIES,
            server_timeout_seconds=self._settings.GEODATA_SERVER_TIMEOUT_SECONDS,
        )
        endpoints = build_geodata_endpoints(query, self._settings.GEODATA_ENDPOINTS)
        try:
            fetched = await self._fetcher.fetch_json(
                endpoints,
                self._request_options(),
                max_attempts_per_endpoint=self._settings.GEODATA_MAX_ATTEMPTS,
            )
        except FetchExhaustedError as exc:
            logger.error("geodata_unavailable", extra={"place": place, "error": str(exc.last_error)})
            raise GeodataUnavailable() from exc
        logger.info("geodata_fetched", extra={"place": place, "source_url": fetched.source_url})
        return fetched

    def _request_options(self, accept_json: bool = False) -> RequestOptions:
        headers = {"User-Agent": self._settings.USER_AGENT}
        if accept_json:
            headers["Accept"] = "application/json"
        return RequestOptions(method="GET", headers=headers)

    def _notify(self, on_status: StatusCallback | None, phase: SearchPhase, message: str) -> None:
        if on_status:
            on_status(SearchStatus(phase=phase, message=message))

    def _record_outcome(self, outcome: str) -> None:
        if self._metrics:
            self._metrics.increment_search_outcome(outcome)
