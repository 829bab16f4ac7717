"""
Poller health endpoint
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from core.exporter import get_exporter

router = APIRouter()

VERSION = "1.0.0"


class PoolHealth(BaseModel):
    url: str
    interval_seconds: float
    tracked_workers: int
    healthy: bool
    last_attempt_at: Optional[str] = None
    last_success_at: Optional[str] = None
    last_error: Optional[str] = None
    consecutive_failures: int = 0
    total_polls: int = 0


class HealthResponse(BaseModel):
    status: str
    version: str
    pools: Dict[str, PoolHealth] = {}


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Overall status is "degraded" while any pool's last poll failed"""
    exporter = get_exporter()

    pools: Dict[str, Any] = {}
    for name, poller in exporter.pollers.items():
        pools[name] = PoolHealth(
            url=poller.url,
            interval_seconds=poller.interval,
            tracked_workers=len(poller.engine.workers),
            **poller.status.to_dict(),
        )

    status = "healthy" if all(p.healthy for p in pools.values()) else "degraded"
    return HealthResponse(status=status, version=VERSION, pools=pools)
