"""
Exporter service wrapper

Wires one ReconciliationEngine + PoolPoller per configured pool onto a shared
Prometheus sink and runs the pollers as background tasks.
"""
import asyncio
import logging
from typing import Dict, List, Optional

from core.config import ConfigError, Settings
from core.metrics_sink import PrometheusMetricsSink
from core.pool_loader import PoolLoader, PoolTarget
from core.poller import PoolPoller
from core.reconciler import ReconciliationEngine

logger = logging.getLogger(__name__)


class ExporterService:
    """Owns the metrics sink and the pollers for every pool"""

    def __init__(self, settings: Settings, targets: List[PoolTarget]):
        self.settings = settings
        self.targets = targets

        include_pool_label = settings.INCLUDE_POOL_LABEL
        if include_pool_label is False and len(targets) > 1:
            raise ConfigError(
                f"INCLUDE_POOL_LABEL cannot be disabled with {len(targets)} pools configured"
            )
        if include_pool_label is None:
            include_pool_label = len(targets) > 1
        self.include_pool_label = bool(include_pool_label)

        self.sink = PrometheusMetricsSink(include_pool_label=self.include_pool_label)
        self.pollers: Dict[str, PoolPoller] = {}
        self._tasks: List[asyncio.Task] = []

        for target in targets:
            engine = ReconciliationEngine(
                sink=self.sink,
                pool=target.name,
                include_pool_label=self.include_pool_label,
                scaling_factor=target.scaling_factor or settings.SCALING_FACTOR,
                rewards_enabled=settings.REWARDS_ENABLED,
                max_tracked_workers=settings.MAX_TRACKED_WORKERS,
            )
            self.pollers[target.name] = PoolPoller(
                name=target.name,
                url=target.build_url(),
                engine=engine,
                interval=target.poll_interval or settings.POLL_INTERVAL,
                request_timeout=settings.REQUEST_TIMEOUT,
            )

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        """Start one background task per poller"""
        if self.running:
            logger.info("Exporter already running")
            return

        self._tasks = [
            asyncio.create_task(poller.run(), name=f"poller:{name}")
            for name, poller in self.pollers.items()
        ]
        logger.info(f"Started {len(self._tasks)} poller(s)")

    async def stop(self) -> None:
        """Cancel poller tasks and close their HTTP sessions"""
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        for poller in self.pollers.values():
            await poller.close()
        logger.info("Exporter stopped")


def build_exporter(settings: Settings) -> ExporterService:
    """Load pool targets and build the exporter; raises ConfigError on bad config"""
    targets = PoolLoader(settings).load_all()
    return ExporterService(settings, targets)


# Set by main.py at startup
_exporter: Optional[ExporterService] = None


def set_exporter(exporter: Optional[ExporterService]) -> None:
    global _exporter
    _exporter = exporter


def get_exporter() -> ExporterService:
    if _exporter is None:
        raise RuntimeError("Exporter not initialized")
    return _exporter
