"""
Snapshot reconciliation

Turns successive /api/accounts/<wallet> documents, which report lifetime
cumulative values, into gauges and monotonic counter increments.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from core.metrics_sink import MetricsSink
from core.pool_payload import (
    STATS_FIELDS,
    WORKER_RATE_FIELDS,
    WORKER_SHARE_FIELDS,
    as_mapping,
    describe,
    read_number,
)

logger = logging.getLogger(__name__)

# snapshot attribute -> metric name
_RATE_GAUGES = {
    "current_hashrate": "hashrate_current",
    "average_hashrate": "hashrate_average",
    "reported_hashrate": "hashrate_reported",
}


@dataclass(frozen=True)
class AccountSnapshot:
    balance_paid: float = 0.0
    balance_unpaid: float = 0.0
    balance_unconfirmed: float = 0.0

    @property
    def total(self) -> float:
        return self.balance_paid + self.balance_unpaid + self.balance_unconfirmed


@dataclass(frozen=True)
class WorkerSnapshot:
    current_hashrate: float = 0.0
    average_hashrate: float = 0.0
    reported_hashrate: float = 0.0
    shares_valid: float = 0.0
    shares_invalid: float = 0.0
    shares_stale: float = 0.0


class ReconciliationEngine:
    """
    Holds the last account snapshot and the worker table for one pool.

    Only ingest() mutates state, and the poller never overlaps calls, so no
    locking is needed.

    Args:
        sink: where gauges and counter increments are published
        pool: pool name, used in log lines and as the "pool" label value
        include_pool_label: must match the label set the sink was built with
        scaling_factor: divisor for balance fields (1e9 for gwei-denominated coins)
        rewards_enabled: derive the pool_rewards counter from balance totals
        max_tracked_workers: 0 keeps every worker forever; otherwise the
            least recently seen worker baseline is dropped past this size
    """

    def __init__(
        self,
        sink: MetricsSink,
        pool: str = "",
        include_pool_label: bool = False,
        scaling_factor: float = 1e9,
        rewards_enabled: bool = True,
        max_tracked_workers: int = 0,
    ):
        if scaling_factor <= 0:
            raise ValueError("scaling_factor must be positive")
        self.sink = sink
        self.pool = pool
        self.include_pool_label = include_pool_label
        self.scaling_factor = scaling_factor
        self.rewards_enabled = rewards_enabled
        self.max_tracked_workers = max_tracked_workers

        self.account = AccountSnapshot()
        self.workers: "OrderedDict[str, WorkerSnapshot]" = OrderedDict()

    def _labels(self, worker: Optional[str] = None) -> Dict[str, str]:
        labels: Dict[str, str] = {}
        if self.include_pool_label:
            labels["pool"] = self.pool
        if worker is not None:
            labels["worker"] = worker
        return labels

    def ingest(self, document: Any) -> None:
        """Reconcile one decoded JSON document against retained state."""
        data = as_mapping(document)
        if data is None:
            logger.warning(f"[{self.pool}] Ignoring API response: expected object, got {describe(document)}")
            return

        if "stats" in data:
            self._ingest_stats(data["stats"])
        if "workers" in data:
            self._ingest_workers(data["workers"])

    def _ingest_stats(self, value: Any) -> None:
        stats = as_mapping(value)
        if stats is None:
            logger.warning(f"[{self.pool}] Skipping stats: expected object, got {describe(value)}")
            return

        labels = self._labels()
        updates: Dict[str, float] = {}
        for key, attr in STATS_FIELDS.items():
            result = read_number(stats, key)
            if not result.ok:
                logger.warning(f"[{self.pool}] Skipping stats.{key}: {result.error}")
                continue
            updates[attr] = result.value / self.scaling_factor
            self.sink.set_gauge(attr, labels, updates[attr])

        # unreadable fields keep their previous value
        new_account = replace(self.account, **updates)

        if self.rewards_enabled:
            old_total = self.account.total
            new_total = new_account.total
            reward_diff = new_total - old_total
            if reward_diff >= 0:
                self.sink.add_counter("rewards", labels, reward_diff)
            else:
                logger.warning(f"[{self.pool}] Pool rewards decreased: {old_total} -> {new_total}")

        self.account = new_account

    def _ingest_workers(self, value: Any) -> None:
        workers = as_mapping(value)
        if workers is None:
            logger.warning(f"[{self.pool}] Skipping workers: expected object, got {describe(value)}")
            return

        for worker, worker_data in workers.items():
            entry = as_mapping(worker_data)
            if entry is None:
                logger.warning(
                    f"[{self.pool}] Skipping worker {worker}: expected object, got {describe(worker_data)}"
                )
                continue
            self._ingest_worker(worker, entry)

    def _ingest_worker(self, worker: str, data: Dict[str, Any]) -> None:
        previous = self.workers.get(worker, WorkerSnapshot())
        labels = self._labels(worker)
        updates: Dict[str, float] = {}

        for key, attr in WORKER_RATE_FIELDS.items():
            result = read_number(data, key)
            if not result.ok:
                logger.warning(f"[{self.pool}] Worker {worker}: skipping {key}: {result.error}")
                continue
            updates[attr] = result.value
            self.sink.set_gauge(_RATE_GAUGES[attr], labels, result.value)

        for key, attr in WORKER_SHARE_FIELDS.items():
            result = read_number(data, key)
            if not result.ok:
                logger.warning(f"[{self.pool}] Worker {worker}: skipping {key}: {result.error}")
                continue
            updates[attr] = result.value

            old_value = getattr(previous, attr)
            share_diff = result.value - old_value
            if share_diff >= 0:
                self.sink.add_counter(attr, labels, share_diff)
            else:
                logger.warning(
                    f"[{self.pool}] Worker {worker}: {key} decreased: {old_value} -> {result.value}"
                )

        self._track(worker, replace(previous, **updates))

    def _track(self, worker: str, snapshot: WorkerSnapshot) -> None:
        if worker in self.workers:
            self.workers.move_to_end(worker)
        self.workers[worker] = snapshot

        if self.max_tracked_workers and len(self.workers) > self.max_tracked_workers:
            evicted, _ = self.workers.popitem(last=False)
            logger.info(f"[{self.pool}] Dropped baseline for worker {evicted} (tracking limit reached)")
