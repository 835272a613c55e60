from __future__ import annotations

import asyncio
import math

import httpx
import pytest

from geo_engine.distance import EARTH_RADIUS_KM
from hospital_search.config import SearchSettings
from hospital_search.core.exceptions import (
    GeocodingUnavailable,
    GeodataUnavailable,
    InvalidInput,
    NoResultsInRadius,
    PlaceNotFound,
    SearchTimedOut,
    UnexpectedFailure,
)
from hospital_search.core.fetch import ResilientFetcher
from hospital_search.core.metrics import InMemorySearchMetricsCollector
from hospital_search.core.models import SearchPhase, SearchStatus
from hospital_search.search import HospitalSearchService

KM_PER_DEGREE = EARTH_RADIUS_KM * math.pi / 180
GEOCODER_HOST = "nominatim.openstreetmap.org"


def element_at_km(element_id: int, distance_km: float) -> dict:
    """A node on the equator *distance_km* east of (0, 0)."""
    return {
        "type": "node",
        "id": element_id,
        "lat": 0.0,
        "lon": distance_km / KM_PER_DEGREE,
        "tags": {"amenity": "hospital", "name": f"Hospital {element_id}"},
    }


def build_service(
    handler,
    metrics: InMemorySearchMetricsCollector | None = None,
    **overrides,
) -> HospitalSearchService:
    async def no_wait(_: float) -> None:
        return None

    transport = httpx.MockTransport(handler)
    settings = SearchSettings(BACKOFF_BASE_SECONDS=0.0, **overrides)
    fetcher = ResilientFetcher(
        base_delay_seconds=0.0,
        metrics=metrics,
        client_factory=lambda: httpx.AsyncClient(transport=transport, timeout=5.0),
        sleep=no_wait,
    )
    return HospitalSearchService(settings=settings, fetcher=fetcher, metrics=metrics)


def geo_handler(elements: list, geocode_payload: object = None):
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.host)
        if request.url.host == GEOCODER_HOST:
            payload = geocode_payload if geocode_payload is not None else [{"lat": "0", "lon": "0"}]
            return httpx.Response(status_code=200, json=payload)
        return httpx.Response(status_code=200, json={"elements": elements})

    handler.calls = calls
    return handler


@pytest.mark.asyncio
@pytest.mark.parametrize("place", ["", "   ", "\t\n"])
async def test_search_rejects_blank_input_without_network(place: str) -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        raise AssertionError("network must not be called")

    service = build_service(handler)
    with pytest.raises(InvalidInput):
        await service.search(place)


@pytest.mark.asyncio
async def test_search_raises_place_not_found_for_empty_candidates() -> None:
    handler = geo_handler(elements=[], geocode_payload=[])
    service = build_service(handler)

    with pytest.raises(PlaceNotFound) as exc_info:
        await service.search("Atlantis")

    assert exc_info.value.place_name == "Atlantis"
    assert handler.calls == [GEOCODER_HOST]


@pytest.mark.asyncio
async def test_search_ranks_facilities_by_ascending_distance() -> None:
    distances = [2.1, 0.5, 10.3, 1.0, 7.7]
    elements = [element_at_km(index, km) for index, km in enumerate(distances)]
    service = build_service(geo_handler(elements))

    result = await service.search("Chennai Central")

    assert [round(item.distance_km, 1) for item in result.facilities] == [0.5, 1.0, 2.1, 7.7, 10.3]
    assert [item.id for item in result.facilities] == ["1", "3", "0", "4", "2"]
    assert result.total == 5
    assert result.shown == 5
    assert result.place_name == "Chennai Central"
    assert result.geodata_source.startswith("https://overpass-api.de/api/interpreter")


@pytest.mark.asyncio
async def test_search_caps_results_at_thirty_nearest() -> None:
    elements = [element_at_km(index, 0.25 * (40 - index)) for index in range(40)]
    service = build_service(geo_handler(elements))

    result = await service.search("Madurai")

    assert result.total == 40
    assert result.shown == 30
    assert len(result.facilities) == 30
    kept_ids = {int(item.id) for item in result.facilities}
    assert kept_ids == set(range(10, 40))
    assert result.facilities[-1].distance_km <= 0.25 * 30 + 1e-6


@pytest.mark.asyncio
async def test_search_excludes_unresolvable_elements_from_output_and_count() -> None:
    elements = [element_at_km(index, index + 1.0) for index in range(8)]
    elements.append({"type": "way", "id": 100, "tags": {"name": "No center"}})
    elements.append({"type": "node", "id": 101, "lat": "unknown", "lon": None})
    service = build_service(geo_handler(elements))

    result = await service.search("Trichy")

    assert result.total == 8
    assert len(result.facilities) == 8
    assert {"100", "101"}.isdisjoint(item.id for item in result.facilities)


@pytest.mark.asyncio
async def test_search_raises_no_results_when_nothing_is_retained() -> None:
    elements = [{"type": "way", "id": 1, "tags": {}}]
    service = build_service(geo_handler(elements))

    with pytest.raises(NoResultsInRadius) as exc_info:
        await service.search("Kodaikanal")

    assert exc_info.value.radius_meters == 15000
    assert "15 km" in exc_info.value.user_message


@pytest.mark.asyncio
async def test_search_falls_back_to_geodata_mirror() -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.host)
        if request.url.host == GEOCODER_HOST:
            return httpx.Response(status_code=200, json=[{"lat": 0, "lon": 0}])
        if request.url.host == "overpass-api.de":
            return httpx.Response(status_code=504, text="<html>Gateway Timeout</html>")
        return httpx.Response(status_code=200, json={"elements": [element_at_km(1, 3.0)]})

    service = build_service(handler)
    result = await service.search("Salem")

    assert requested == [GEOCODER_HOST] + ["overpass-api.de"] * 3 + ["overpass.kumi.systems"]
    assert result.geodata_source.startswith("https://overpass.kumi.systems/")


@pytest.mark.asyncio
async def test_search_maps_geodata_exhaustion_to_geodata_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == GEOCODER_HOST:
            return httpx.Response(status_code=200, json=[{"lat": 0, "lon": 0}])
        return httpx.Response(status_code=429, json={"remark": "rate_limited"})

    metrics = InMemorySearchMetricsCollector()
    service = build_service(handler, metrics=metrics)
    with pytest.raises(GeodataUnavailable) as exc_info:
        await service.search("Vellore")

    assert "rate-limited" in exc_info.value.user_message
    assert metrics.search_outcomes_total["GEODATA_UNAVAILABLE"] == 1
    assert metrics.fetch_failures_total["overpass-api.de"] == 3
    assert metrics.fetch_failures_total["overpass.kumi.systems"] == 3


@pytest.mark.asyncio
async def test_search_maps_geocoding_exhaustion_to_geocoding_unavailable() -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.host)
        return httpx.Response(status_code=503, json={"error": "down"})

    service = build_service(handler)
    with pytest.raises(GeocodingUnavailable):
        await service.search("Coimbatore")

    assert requested == [GEOCODER_HOST, GEOCODER_HOST, "geocode.maps.co", "geocode.maps.co"]


@pytest.mark.asyncio
async def test_search_maps_malformed_geodata_to_unexpected_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == GEOCODER_HOST:
            return httpx.Response(status_code=200, json=[{"lat": 0, "lon": 0}])
        return httpx.Response(status_code=200, json=["not", "an", "object"])

    metrics = InMemorySearchMetricsCollector()
    service = build_service(handler, metrics=metrics)
    with pytest.raises(UnexpectedFailure):
        await service.search("Erode")

    assert metrics.search_outcomes_total["UNEXPECTED_FAILURE"] == 1


@pytest.mark.asyncio
async def test_search_reports_status_at_each_phase() -> None:
    statuses: list[SearchStatus] = []
    service = build_service(geo_handler([element_at_km(1, 1.0), element_at_km(2, 2.0)]))

    await service.search("Thanjavur", on_status=statuses.append)

    assert [status.phase for status in statuses] == [
        SearchPhase.GEOCODING,
        SearchPhase.SEARCHING,
        SearchPhase.FOUND,
    ]
    assert "Thanjavur" in statuses[1].message
    assert "lat 0.0000" in statuses[1].message
    assert statuses[2].message == "Found 2 items; showing nearest 2."


@pytest.mark.asyncio
async def test_search_sends_region_qualified_query_to_geocoder() -> None:
    queries: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == GEOCODER_HOST:
            queries.append(request.url.params["q"])
            assert request.headers["user-agent"].startswith("HospitalLocator/")
            return httpx.Response(status_code=200, json=[{"lat": 0, "lon": 0}])
        return httpx.Response(status_code=200, json={"elements": [element_at_km(1, 1.0)]})

    service = build_service(handler)
    await service.search("  Mahabalipuram  ")

    assert queries == ["Mahabalipuram, Tamil Nadu, India"]


class SlowFetcher:
    async def fetch_json(self, endpoints, options=None, max_attempts_per_endpoint=3):
        await asyncio.sleep(1.0)
        raise AssertionError("should have been cancelled")


@pytest.mark.asyncio
async def test_search_times_out_on_client_side() -> None:
    metrics = InMemorySearchMetricsCollector()
    service = HospitalSearchService(
        settings=SearchSettings(SEARCH_TIMEOUT_SECONDS=0.01),
        fetcher=SlowFetcher(),
        metrics=metrics,
    )

    with pytest.raises(SearchTimedOut):
        await service.search("Rameswaram")

    assert metrics.search_outcomes_total["SEARCH_TIMEOUT"] == 1


@pytest.mark.asyncio
async def test_search_records_success_outcome() -> None:
    metrics = InMemorySearchMetricsCollector()
    service = build_service(geo_handler([element_at_km(1, 1.0)]), metrics=metrics)

    await service.search("Kanchipuram")

    assert metrics.search_outcomes_total["SUCCESS"] == 1
