import sys
from pathlib import Path
from typing import Dict, List, Mapping, Tuple

import pytest

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))


LabelKey = Tuple[Tuple[str, str], ...]


def _key(labels: Mapping[str, str]) -> LabelKey:
    return tuple(sorted(labels.items()))


class FakeSink:
    """In-memory MetricsSink recording the latest gauge values and counter totals"""

    def __init__(self):
        self.gauges: Dict[Tuple[str, LabelKey], float] = {}
        self.counters: Dict[Tuple[str, LabelKey], float] = {}
        self.counter_calls: List[Tuple[str, LabelKey, float]] = []

    def set_gauge(self, name, labels, value):
        self.gauges[(name, _key(labels))] = value

    def add_counter(self, name, labels, delta):
        assert delta >= 0, f"negative delta {delta} for {name}"
        key = (name, _key(labels))
        self.counters[key] = self.counters.get(key, 0.0) + delta
        self.counter_calls.append((name, key[1], delta))

    def gauge(self, name, **labels):
        return self.gauges.get((name, _key(labels)))

    def counter(self, name, **labels):
        return self.counters.get((name, _key(labels)), 0.0)


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Point CONFIG_DIR at an empty temp dir and clear exporter env vars"""
    for name in (
        "POOL_HOST", "WALLET", "POOL_NAME", "URL_TEMPLATE", "POLL_INTERVAL",
        "REQUEST_TIMEOUT", "SCALING_FACTOR", "REWARDS_ENABLED", "INCLUDE_POOL_LABEL",
        "MAX_TRACKED_WORKERS", "WEB_HOST", "WEB_PORT", "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
    return tmp_path
