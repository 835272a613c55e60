from __future__ import annotations

from collections import defaultdict
from urllib.parse import urlsplit


class InMemorySearchMetricsCollector:
    def __init__(self) -> None:
        self.fetch_failures_total: dict[str, int] = defaultdict(int)
        self.search_outcomes_total: dict[str, int] = defaultdict(int)

    def increment_fetch_failure(self, url: str) -> None:
        host = urlsplit(url).hostname or "unknown"
        self.fetch_failures_total[host] += 1

    def increment_search_outcome(self, outcome: str) -> None:
        self.search_outcomes_total[outcome] += 1
