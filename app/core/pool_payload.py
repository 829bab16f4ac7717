"""Typed field extraction for /api/accounts/<wallet> documents."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

# Upstream key -> snapshot attribute
STATS_FIELDS = {
    "paid": "balance_paid",
    "balance": "balance_unpaid",
    "immature": "balance_unconfirmed",
}

WORKER_RATE_FIELDS = {
    "hr": "current_hashrate",
    "hr2": "average_hashrate",
    "rhr": "reported_hashrate",
}

WORKER_SHARE_FIELDS = {
    "sharesValid": "shares_valid",
    "sharesInvalid": "shares_invalid",
    "sharesStale": "shares_stale",
}


@dataclass(frozen=True)
class FieldRead:
    """Result of reading one numeric field: either a value or the reason it is absent."""
    value: Optional[float] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def as_mapping(value: Any) -> Optional[Dict[str, Any]]:
    """Return value if it is a JSON object with string keys, else None."""
    if not isinstance(value, dict):
        return None
    if not all(isinstance(key, str) for key in value):
        return None
    return value


def describe(value: Any) -> str:
    """Short type name used in warnings."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return type(value).__name__


def read_number(data: Dict[str, Any], key: str) -> FieldRead:
    """Read a finite JSON number; booleans and numeric strings are rejected."""
    if key not in data:
        return FieldRead(error="missing")

    raw = data[key]
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return FieldRead(error=f"expected number, got {describe(raw)}")

    value = float(raw)
    if not math.isfinite(value):
        return FieldRead(error=f"non-finite value {raw!r}")
    return FieldRead(value=value)
