"""
Pool account poller

Fetches /api/accounts/<wallet> on a fixed cadence and hands each decoded
document to the pool's ReconciliationEngine.
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp

from core.reconciler import ReconciliationEngine

logger = logging.getLogger(__name__)

REQUEST_HEADERS = {"accept": "application/json"}


@dataclass
class PollerStatus:
    last_attempt_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None
    last_error: Optional[str] = None
    consecutive_failures: int = 0
    total_polls: int = 0

    @property
    def healthy(self) -> bool:
        return self.consecutive_failures == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "healthy": self.healthy,
            "last_attempt_at": self.last_attempt_at.isoformat() if self.last_attempt_at else None,
            "last_success_at": self.last_success_at.isoformat() if self.last_success_at else None,
            "last_error": self.last_error,
            "consecutive_failures": self.consecutive_failures,
            "total_polls": self.total_polls,
        }


class PoolPoller:
    """
    Polls one pool account forever.

    The URL is fixed at construction. Each cycle either ingests a whole
    document or leaves the engine untouched; the sleep after a cycle is
    unconditional, so the real period is interval + request time.

    Args:
        name: pool name used in log lines
        url: fully built account URL
        engine: reconciliation engine owned by this poller
        interval: seconds to sleep between cycles
        request_timeout: total seconds per request, 0 for no timeout
        session: aiohttp session to reuse (one is created on demand otherwise)
    """

    def __init__(
        self,
        name: str,
        url: str,
        engine: ReconciliationEngine,
        interval: float,
        request_timeout: float = 10,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.name = name
        self.url = url
        self.engine = engine
        self.interval = interval
        self.timeout = aiohttp.ClientTimeout(total=request_timeout or None)
        self.status = PollerStatus()

        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def run(self) -> None:
        """Poll forever; only cancellation stops the loop."""
        logger.info(f"Starting poller for {self.name}: {self.url} every {self.interval}s")
        while True:
            try:
                await self.poll_once()
            except Exception as e:
                logger.exception(f"[{self.name}] Unexpected error during poll")
                self._record_failure(f"Unexpected error during poll: {e}")
            await asyncio.sleep(self.interval)

    async def poll_once(self) -> bool:
        """Run one fetch/ingest cycle. Returns True if a document was ingested."""
        self.status.last_attempt_at = datetime.now(timezone.utc)
        self.status.total_polls += 1

        body = await self._fetch()
        if body is None:
            return False

        try:
            document = json.loads(body)
        except (ValueError, RecursionError) as e:
            self._record_failure(f"Error parsing API response: {e}")
            return False

        try:
            self.engine.ingest(document)
        except Exception as e:
            logger.exception(f"[{self.name}] Unexpected error reconciling API response")
            self._record_failure(f"Error reconciling API response: {e}")
            return False

        self.status.last_success_at = self.status.last_attempt_at
        self.status.last_error = None
        self.status.consecutive_failures = 0
        logger.debug(f"[{self.name}] Poll complete")
        return True

    async def _fetch(self) -> Optional[bytes]:
        try:
            session = self._get_session()
            async with session.get(self.url, headers=REQUEST_HEADERS, timeout=self.timeout) as response:
                if not 200 <= response.status < 300:
                    self._record_failure(f"API returned status {response.status}")
                    return None
                return await response.read()
        except asyncio.TimeoutError:
            self._record_failure(f"Timed out sending API request after {self.timeout.total}s")
        except aiohttp.ClientError as e:
            self._record_failure(f"Error sending API request: {e}")
        return None

    def _record_failure(self, message: str) -> None:
        self.status.last_error = message
        self.status.consecutive_failures += 1
        logger.warning(f"[{self.name}] {message}")
