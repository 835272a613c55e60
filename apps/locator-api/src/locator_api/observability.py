from __future__ import annotations

from collections import deque
from contextvars import ContextVar
from dataclasses import asdict, dataclass
from typing import Protocol

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from hospital_search.core.metrics import InMemorySearchMetricsCollector

API_METRICS_HISTORY_LIMIT = 1000

_trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")


def set_trace_id(trace_id: str) -> None:
    _trace_id_ctx.set(trace_id)


def get_trace_id() -> str:
    return _trace_id_ctx.get()


@dataclass(frozen=True)
class ApiRequestMetric:
    method: str
    path: str
    status_code: int
    duration_ms: float
    trace_id: str


class ApiMetricCollector(Protocol):
    def observe(self, metric: ApiRequestMetric) -> None: ...


class InMemoryApiMetricsCollector(ApiMetricCollector):
    def __init__(self, maxlen: int = API_METRICS_HISTORY_LIMIT) -> None:
        self._metrics: deque[ApiRequestMetric] = deque(maxlen=maxlen)

    def observe(self, metric: ApiRequestMetric) -> None:
        self._metrics.append(metric)

    def snapshot(self) -> list[dict]:
        return [asdict(item) for item in self._metrics]


class PrometheusApiMetricsCollector(ApiMetricCollector):
    def __init__(self) -> None:
        self._registry = CollectorRegistry()
        self._request_counter = Counter(
            "api_http_requests_total",
            "Total API HTTP requests",
            labelnames=("method", "path", "status_code"),
            registry=self._registry,
        )
        self._latency_histogram = Histogram(
            "api_http_request_duration_ms",
            "API HTTP request latency in milliseconds",
            labelnames=("method", "path"),
            buckets=(50, 100, 250, 500, 1000, 3000, 10000, 30000, 90000),
            registry=self._registry,
        )

    def observe(self, metric: ApiRequestMetric) -> None:
        status = str(metric.status_code)
        self._request_counter.labels(metric.method, metric.path, status).inc()
        self._latency_histogram.labels(metric.method, metric.path).observe(metric.duration_ms)

    def render(self) -> str:
        return generate_latest(self._registry).decode("utf-8")


class CompositeApiMetricsCollector(ApiMetricCollector):
    def __init__(self, collectors: list[ApiMetricCollector]) -> None:
        self._collectors = collectors

    def observe(self, metric: ApiRequestMetric) -> None:
        for collector in self._collectors:
            collector.observe(metric)


class SearchPrometheusExporter:
    def __init__(self) -> None:
        self._registry = CollectorRegistry()
        self._fetch_failures = Gauge(
            "search_fetch_failures_total",
            "Failed upstream fetch attempts grouped by endpoint host",
            labelnames=("host",),
            registry=self._registry,
        )
        self._search_outcomes = Gauge(
            "search_outcomes_total",
            "Completed searches grouped by outcome",
            labelnames=("outcome",),
            registry=self._registry,
        )

    def render(self, metrics: InMemorySearchMetricsCollector) -> str:
        for host, count in metrics.fetch_failures_total.items():
            self._fetch_failures.labels(host=host).set(count)
        for outcome, count in metrics.search_outcomes_total.items():
            self._search_outcomes.labels(outcome=outcome).set(count)
        return generate_latest(self._registry).decode("utf-8")
