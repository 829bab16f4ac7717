"""
Prometheus metrics sink

Every metric lives on a dedicated CollectorRegistry so /metrics only carries
pool metrics (no python_gc_*, process_*, etc.).
"""
from __future__ import annotations

from typing import Dict, Mapping, Protocol, Sequence

from prometheus_client import CollectorRegistry, Counter, Gauge

PREFIX = "pool_"

# name -> help text; names are without PREFIX
ACCOUNT_GAUGES = {
    "balance_paid": "Balance paid from pool (coin units)",
    "balance_unpaid": "Unpaid balance on pool (coin units)",
    "balance_unconfirmed": "Unconfirmed balance on pool (coin units)",
}

ACCOUNT_COUNTERS = {
    "rewards": "Total pool rewards (coin units)",
}

WORKER_GAUGES = {
    "hashrate_current": "Current worker hashrate (H/s)",
    "hashrate_average": "Average worker hashrate (H/s)",
    "hashrate_reported": "Reported worker hashrate (H/s)",
}

WORKER_COUNTERS = {
    "shares_valid": "Valid worker shares",
    "shares_invalid": "Invalid worker shares",
    "shares_stale": "Stale worker shares",
}


class MetricsSink(Protocol):
    def set_gauge(self, name: str, labels: Mapping[str, str], value: float) -> None: ...

    def add_counter(self, name: str, labels: Mapping[str, str], delta: float) -> None: ...


class PrometheusMetricsSink:
    """
    MetricsSink backed by prometheus_client.

    Args:
        include_pool_label: add a "pool" label to every metric
        registry: registry to register on (a fresh one by default)
    """

    def __init__(self, include_pool_label: bool = False, registry: CollectorRegistry | None = None):
        self.include_pool_label = include_pool_label
        self.registry = registry or CollectorRegistry()

        account_labels: Sequence[str] = ["pool"] if include_pool_label else []
        worker_labels: Sequence[str] = [*account_labels, "worker"]

        self._gauges: Dict[str, Gauge] = {}
        self._counters: Dict[str, Counter] = {}

        for name, doc in ACCOUNT_GAUGES.items():
            self._gauges[name] = Gauge(f"{PREFIX}{name}", doc, labelnames=account_labels, registry=self.registry)
        for name, doc in WORKER_GAUGES.items():
            self._gauges[name] = Gauge(f"{PREFIX}{name}", doc, labelnames=worker_labels, registry=self.registry)
        for name, doc in ACCOUNT_COUNTERS.items():
            self._counters[name] = Counter(f"{PREFIX}{name}", doc, labelnames=account_labels, registry=self.registry)
        for name, doc in WORKER_COUNTERS.items():
            self._counters[name] = Counter(f"{PREFIX}{name}", doc, labelnames=worker_labels, registry=self.registry)

    def set_gauge(self, name: str, labels: Mapping[str, str], value: float) -> None:
        gauge = self._gauges[name]
        (gauge.labels(**labels) if labels else gauge).set(value)

    def add_counter(self, name: str, labels: Mapping[str, str], delta: float) -> None:
        if delta < 0:
            raise ValueError(f"Counter {PREFIX}{name} cannot decrease (delta={delta})")
        counter = self._counters[name]
        (counter.labels(**labels) if labels else counter).inc(delta)
