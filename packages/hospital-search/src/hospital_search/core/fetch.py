from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import httpx

from hospital_search.core.exceptions import (
    FetchError,
    FetchExhaustedError,
    NonJsonResponseError,
    RecoverableFetchError,
    UpstreamStatusError,
    UpstreamTransportError,
)
from hospital_search.core.metrics import InMemorySearchMetricsCollector
from hospital_search.core.models import FetchSuccess, RequestOptions

logger = logging.getLogger(__name__)

DEFAULT_BASE_DELAY_SECONDS = 0.5


class ResilientFetcher:
    """Fetch JSON from an ordered fallback chain of endpoints.

    Each endpoint gets its own zero-based attempt counter and, after every
    failed attempt, a wait of ``base_delay_seconds * 2 ** attempt``. The first
    2xx JSON answer wins; endpoints are never queried out of order.
    """

    def __init__(
        self,
        base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS,
        timeout_seconds: float = 20.0,
        metrics: InMemorySearchMetricsCollector | None = None,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._base_delay_seconds = base_delay_seconds
        self._timeout_seconds = timeout_seconds
        self._metrics = metrics
        self._client_factory = client_factory
        self._sleep = sleep

    async def fetch_json(
        self,
        endpoints: Sequence[str],
        options: RequestOptions | None = None,
        max_attempts_per_endpoint: int = 3,
    ) -> FetchSuccess:
        options = options or RequestOptions()
        last_error: Exception | None = None
        factory = self._client_factory or (lambda: httpx.AsyncClient(timeout=self._timeout_seconds))
        async with factory() as client:
            for endpoint_index, url in enumerate(endpoints):
                for attempt in range(max_attempts_per_endpoint):
                    try:
                        data = await self._request_once(client, url, options)
                    except RecoverableFetchError as exc:
                        last_error = exc
                        self._on_failed_attempt(exc, attempt)
                        is_final = (
                            endpoint_index == len(endpoints) - 1
                            and attempt == max_attempts_per_endpoint - 1
                        )
                        if not is_final:
                            await self._sleep(self._base_delay_seconds * (2**attempt))
                        continue
                    return FetchSuccess(data=data, source_url=url)
        raise FetchExhaustedError(last_error or FetchError("all fetch attempts failed"))

    async def _request_once(self, client: httpx.AsyncClient, url: str, options: RequestOptions) -> Any:
        try:
            response = await client.request(
                options.method,
                url,
                headers=dict(options.headers),
                data=dict(options.data) if options.data is not None else None,
            )
        except httpx.TimeoutException as exc:
            raise UpstreamTransportError(url, f"timeout requesting {url}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamTransportError(url, f"request to {url} failed: {exc}") from exc

        text = response.text
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise NonJsonResponseError(url, response.status_code, text) from exc
        if not response.is_success:
            raise UpstreamStatusError(url, response.status_code, response.reason_phrase)
        return data

    def _on_failed_attempt(self, exc: RecoverableFetchError, attempt: int) -> None:
        logger.warning(
            "fetch_attempt_failed",
            extra={"url": exc.url, "attempt": attempt, "error": str(exc)},
        )
        if self._metrics:
            self._metrics.increment_fetch_failure(exc.url)
