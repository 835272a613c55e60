from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)


class LatestSearchGate:
    """Search-generation counter: only the newest search may publish its outcome.

    Library helper for callers that embed the search service and issue searches
    back to back, such as a desktop or chat front end. The bundled browser page
    keeps the same counter client side.
    """

    def __init__(self) -> None:
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def begin(self) -> int:
        self._generation += 1
        return self._generation

    def is_current(self, token: int) -> bool:
        return token == self._generation

    async def run(self, operation: Callable[[], Awaitable[T]]) -> tuple[bool, T | None]:
        token = self.begin()
        try:
            value = await operation()
        except Exception:
            if not self.is_current(token):
                logger.info("stale_search_discarded", extra={"token": token, "current": self._generation})
                return False, None
            raise
        if not self.is_current(token):
            logger.info("stale_search_discarded", extra={"token": token, "current": self._generation})
            return False, None
        return True, value
