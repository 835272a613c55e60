from __future__ import annotations

from hospital_search.config import load_search_settings
from hospital_search.core.metrics import InMemorySearchMetricsCollector
from hospital_search.search import HospitalSearchService

_search_metrics = InMemorySearchMetricsCollector()
_search_service = HospitalSearchService(settings=load_search_settings(), metrics=_search_metrics)


def get_search_service() -> HospitalSearchService:
    return _search_service


def get_search_metrics() -> InMemorySearchMetricsCollector:
    return _search_metrics
