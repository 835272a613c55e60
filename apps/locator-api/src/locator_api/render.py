from __future__ import annotations

from geo_engine.models import Coordinate
from hospital_search.core.models import FacilityRecord, SearchResult

from locator_api.sanitize import safe_http_url, sanitize_html_text, tel_href

STATIC_MAP_BASE_URL = "https://staticmap.openstreetmap.de/staticmap.php"
DEFAULT_FACILITY_NAME = "Unnamed Hospital/Clinic"
DEFAULT_ADDRESS = "Address not available"


def static_map_url(coordinate: Coordinate) -> str:
    lat, lon = coordinate.latitude, coordinate.longitude
    return f"{STATIC_MAP_BASE_URL}?center={lat},{lon}&zoom=15&size=400x200&markers={lat},{lon},red-pushpin"


def osm_view_url(coordinate: Coordinate) -> str:
    lat, lon = coordinate.latitude, coordinate.longitude
    return f"https://www.openstreetmap.org/?mlat={lat}&mlon={lon}#map=18/{lat}/{lon}"


def render_status(message: str) -> str:
    return f'<p class="status">{sanitize_html_text(message)}</p>'


def render_card(record: FacilityRecord) -> str:
    """Render one facility; every value that came from map data is escaped."""
    name = sanitize_html_text(record.display_name or DEFAULT_FACILITY_NAME)
    address = sanitize_html_text(record.address or DEFAULT_ADDRESS)
    distance = f"{record.distance_km or 0.0:.2f}"
    map_src = sanitize_html_text(static_map_url(record.coordinate))
    osm_href = sanitize_html_text(osm_view_url(record.coordinate))

    lines = [
        '<div class="card">',
        f'  <img src="{map_src}" alt="{name}">',
        f"  <h3>{name}</h3>",
        f'  <p class="meta">Distance: <strong>{distance} km</strong></p>',
        f"  <p>{address}</p>",
    ]
    if record.opening_hours:
        lines.append(f"  <p>Hours: {sanitize_html_text(record.opening_hours)}</p>")
    lines.append('  <div class="meta">')
    if record.phone:
        lines.append(
            f'    <a class="link" href="{sanitize_html_text(tel_href(record.phone))}">'
            f"{sanitize_html_text(record.phone)}</a>"
        )
    website = safe_http_url(record.website)
    if website:
        lines.append(
            f'    <a class="link" href="{sanitize_html_text(website)}" target="_blank" rel="noopener">Website</a>'
        )
    lines.append(f'    <a class="link" href="{osm_href}" target="_blank" rel="noopener">View on OSM</a>')
    lines.append("  </div>")
    lines.append("</div>")
    return "\n".join(lines)


def summary_message(result: SearchResult) -> str:
    return f"Found {result.total} items; showing nearest {result.shown}."


def render_results(result: SearchResult) -> str:
    cards = [render_card(record) for record in result.facilities]
    return "\n".join([render_status(summary_message(result)), *cards])
