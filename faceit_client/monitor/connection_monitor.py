"""Periodic connection checks with a bounded attempt history.

A check probes the currently resolved address only; it never starts a
discovery round. Reconnecting forces redetection first. The background
loop skips its tick while a discovery round is already in flight.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from datetime import datetime, timezone

from faceit_client.connection import ApiConnection
from faceit_client.monitor.types import ConnectionAttempt

logger = logging.getLogger(__name__)


class ConnectionMonitor:
    """Tracks whether the resolved backend is currently answering.

    Parameters
    ----------
    connection:
        The process-wide ApiConnection.
    interval_seconds:
        Delay between background checks (default 300 = 5 min).
    history_size:
        Number of recent attempts kept, newest first (default 5).
    """

    def __init__(
        self,
        connection: ApiConnection,
        interval_seconds: float = 300,
        history_size: int = 5,
    ) -> None:
        self._connection = connection
        self._interval_seconds = interval_seconds
        self._history: deque[ConnectionAttempt] = deque(maxlen=history_size)
        self._is_connected = False
        self._last_checked: datetime | None = None

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    @property
    def history(self) -> list[ConnectionAttempt]:
        return list(self._history)

    async def check_connection(self) -> bool:
        """Probe the current address without triggering discovery."""
        url = self._connection.current_url
        if url is None:
            connected, error = False, "No backend resolved yet"
        else:
            connected, error = await self._connection.prober.check(url)

        self._history.appendleft(
            ConnectionAttempt(url=url or "unknown", success=connected, error=error)
        )
        self._is_connected = connected
        self._last_checked = datetime.now(timezone.utc)

        if not connected:
            logger.warning(
                "Connection check failed: %s",
                error,
                extra={"endpoint": url, "error_kind": "check_failed"},
            )
        return connected

    async def reconnect(self) -> str:
        """Force redetection, then re-check; returns the resolved URL."""
        url = await self._connection.force_redetect()
        await self.check_connection()
        logger.info("Re-detection completed, using %s", url, extra={"endpoint": url})
        return url

    async def monitor_loop(self) -> None:
        """Check every ``interval_seconds`` until cancelled."""
        while True:
            await asyncio.sleep(self._interval_seconds)
            if self._connection.coordinator.is_detecting:
                continue
            await self.check_connection()

    def get_status(self) -> dict:
        """Return connection state for the diagnostics endpoint."""
        return {
            "is_connected": self._is_connected,
            "last_checked": self._last_checked.isoformat() if self._last_checked else None,
            "history": [attempt.to_dict() for attempt in self._history],
            "detection": self._connection.get_detection_status(),
        }
