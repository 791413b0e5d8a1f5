from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from app.shopbook.core.config import settings


@dataclass
class MetricsSnapshot:
    content: bytes
    content_type: str


class Metrics:
    def __init__(self) -> None:
        self.enabled = bool(settings.METRICS_ENABLED)
        self._registry = None
        self._http_requests_total = None
        self._http_request_duration_ms = None
        self._report_cache_events_total = None
        self._report_duration_ms = None
        self._report_forbidden_total = None
        self._lock_wait_timeout_total = None
        if self.enabled:
            self._initialize_registry()

    def _initialize_registry(self) -> None:
        self._registry = CollectorRegistry()
        self._http_requests_total = Counter(
            "http_requests_total",
            "HTTP requests by route/method/status.",
            ["route", "method", "status"],
            registry=self._registry,
        )
        self._http_request_duration_ms = Histogram(
            "http_request_duration_ms",
            "HTTP request latency in milliseconds.",
            ["route", "method", "status"],
            buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
            registry=self._registry,
        )
        self._report_cache_events_total = Counter(
            "report_cache_events_total",
            "Report cache lookups and purges by report and outcome.",
            ["report", "outcome"],
            registry=self._registry,
        )
        self._report_duration_ms = Histogram(
            "report_compute_duration_ms",
            "Time spent computing a report on a cache miss, in milliseconds.",
            ["report"],
            buckets=(1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000),
            registry=self._registry,
        )
        self._report_forbidden_total = Counter(
            "report_forbidden_total",
            "Report requests rejected by the permission gate.",
            ["reason"],
            registry=self._registry,
        )
        self._lock_wait_timeout_total = Counter(
            "lock_wait_timeout_total",
            "Lock wait timeout occurrences.",
            registry=self._registry,
        )

    def reset(self) -> None:
        if not self.enabled:
            return
        self._initialize_registry()

    def record_http_request(self, *, route: str, method: str, status_code: int, latency_ms: float) -> None:
        if not self.enabled:
            return
        labels = {"route": route, "method": method, "status": str(status_code)}
        self._http_requests_total.labels(**labels).inc()
        self._http_request_duration_ms.labels(**labels).observe(latency_ms)

    def record_report_cache(self, report: str, outcome: str, count: int = 1) -> None:
        if not self.enabled or count <= 0:
            return
        self._report_cache_events_total.labels(report=report, outcome=outcome).inc(count)

    def observe_report_duration(self, report: str, elapsed_ms: float) -> None:
        if not self.enabled:
            return
        self._report_duration_ms.labels(report=report).observe(elapsed_ms)

    def increment_report_forbidden(self, reason: str) -> None:
        if not self.enabled:
            return
        self._report_forbidden_total.labels(reason=reason).inc()

    def increment_lock_wait_timeout(self) -> None:
        if not self.enabled:
            return
        self._lock_wait_timeout_total.inc()

    def render(self) -> MetricsSnapshot:
        if not self.enabled:
            return MetricsSnapshot(content=b"metrics_disabled\n", content_type="text/plain")
        return MetricsSnapshot(content=generate_latest(self._registry), content_type=CONTENT_TYPE_LATEST)


metrics = Metrics()
