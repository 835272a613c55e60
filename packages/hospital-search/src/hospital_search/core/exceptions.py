from __future__ import annotations

BODY_PREFIX_LIMIT = 180


class FetchError(Exception):
    """Base fetch exception."""


class RecoverableFetchError(FetchError):
    """Raised for a single failed attempt that may be retried."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(message)
        self.url = url


class NonJsonResponseError(RecoverableFetchError):
    """Raised when an endpoint answers with a body that is not JSON."""

    def __init__(self, url: str, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body_prefix = body[:BODY_PREFIX_LIMIT]
        super().__init__(
            url,
            f"non-json response from {url} (status {status_code}), first chars: {self.body_prefix}",
        )


class UpstreamStatusError(RecoverableFetchError):
    """Raised when an endpoint answers with JSON and a non-2xx status."""

    def __init__(self, url: str, status_code: int, reason: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(url, f"HTTP {status_code} {reason}".strip())


class UpstreamTransportError(RecoverableFetchError):
    """Raised when the request never produced a response."""


class FetchExhaustedError(FetchError):
    """Raised when every endpoint used up its attempts."""

    def __init__(self, last_error: Exception) -> None:
        super().__init__(str(last_error))
        self.last_error = last_error


class MalformedPayloadError(Exception):
    """Raised when a service payload does not have the expected shape."""


class SearchError(Exception):
    """Base search outcome; ``user_message`` is safe to display as-is."""

    code = "SEARCH_ERROR"
    user_message = "An error occurred while searching."

    def __init__(self, user_message: str | None = None) -> None:
        if user_message is not None:
            self.user_message = user_message
        super().__init__(self.user_message)


class InvalidInput(SearchError):
    code = "INVALID_INPUT"
    user_message = "Please type or select a place name."


class PlaceNotFound(SearchError):
    code = "PLACE_NOT_FOUND"
    user_message = "Place not found. Try a nearby city or check spelling."

    def __init__(self, place_name: str) -> None:
        self.place_name = place_name
        super().__init__()


class GeocodingUnavailable(SearchError):
    code = "GEOCODING_UNAVAILABLE"
    user_message = "The geocoding service is unavailable right now. Try again in a moment."


class GeodataUnavailable(SearchError):
    code = "GEODATA_UNAVAILABLE"
    user_message = "Failed to fetch hospital data (server busy or rate-limited). Try again in a moment."


class NoResultsInRadius(SearchError):
    code = "NO_RESULTS"

    def __init__(self, place_name: str, radius_meters: int) -> None:
        self.place_name = place_name
        self.radius_meters = radius_meters
        super().__init__(
            f"No hospitals or clinics found within {radius_meters / 1000:g} km of {place_name}."
        )


class SearchTimedOut(SearchError):
    code = "SEARCH_TIMEOUT"
    user_message = "The search took too long. Try again in a moment."


class UnexpectedFailure(SearchError):
    code = "UNEXPECTED_FAILURE"
    user_message = "An error occurred while searching. Please try again."
