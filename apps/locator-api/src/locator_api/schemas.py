from __future__ import annotations

from pydantic import BaseModel

from hospital_search.core.models import FacilityRecord, SearchResult

from locator_api.render import DEFAULT_FACILITY_NAME, osm_view_url, static_map_url
from locator_api.sanitize import safe_http_url


class FacilityItem(BaseModel):
    id: str
    osm_type: str
    name: str
    latitude: float
    longitude: float
    distance_km: float
    address: str | None = None
    phone: str | None = None
    website: str | None = None
    opening_hours: str | None = None
    osm_url: str
    static_map_url: str
    tags: dict[str, str]

    @classmethod
    def from_record(cls, record: FacilityRecord) -> FacilityItem:
        return cls(
            id=record.id,
            osm_type=record.osm_type,
            name=record.display_name or DEFAULT_FACILITY_NAME,
            latitude=record.coordinate.latitude,
            longitude=record.coordinate.longitude,
            distance_km=round(record.distance_km or 0.0, 3),
            address=record.address,
            phone=record.phone,
            website=safe_http_url(record.website),
            opening_hours=record.opening_hours,
            osm_url=osm_view_url(record.coordinate),
            static_map_url=static_map_url(record.coordinate),
            tags=dict(record.tags),
        )


class HospitalSearchData(BaseModel):
    place: str
    origin_latitude: float | None = None
    origin_longitude: float | None = None
    items: list[FacilityItem]

    @classmethod
    def from_result(cls, result: SearchResult) -> HospitalSearchData:
        return cls(
            place=result.place_name,
            origin_latitude=result.origin.latitude,
            origin_longitude=result.origin.longitude,
            items=[FacilityItem.from_record(record) for record in result.facilities],
        )
