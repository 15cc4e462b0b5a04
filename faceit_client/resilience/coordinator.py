"""Single-flight resolution of the backend base URL.

The coordinator owns the resolved endpoint. At most one discovery round is
in flight at a time: the first caller creates the shared task synchronously
(before any suspension point) and every concurrent caller awaits that same
task, so N concurrent first-time callers cost one probing round and all
observe one address.

A discovery round is shielded from caller cancellation and always runs to
completion. When every candidate is unreachable the coordinator degrades to
the configured fallback instead of failing; ``NoReachableEndpointError``
only reaches callers when neither a fallback nor a previously resolved
address exists.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from faceit_client.endpoints.prober import EndpointProber
from faceit_client.endpoints.registry import CandidateRegistry
from faceit_client.middleware.error_handler import NoReachableEndpointError

logger = logging.getLogger(__name__)


class EndpointCoordinator:
    """Caches the resolved backend URL and coordinates discovery rounds."""

    def __init__(self, registry: CandidateRegistry, prober: EndpointProber) -> None:
        self._registry = registry
        self._prober = prober

        self._resolved: str | None = None
        self._last_known: str | None = None
        self._inflight: asyncio.Task[str] | None = None

        self._degraded = False
        self._rounds = 0
        self._last_resolved_at: datetime | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def current_url(self) -> str | None:
        """Resolved URL without triggering discovery."""
        return self._resolved

    @property
    def is_detecting(self) -> bool:
        return self._inflight is not None

    @property
    def degraded(self) -> bool:
        """True when the current URL is the fallback chosen after a failed round."""
        return self._degraded

    @property
    def rounds(self) -> int:
        """Number of discovery rounds started so far."""
        return self._rounds

    def is_using_url(self, url: str) -> bool:
        return self._resolved == url.rstrip("/")

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve(self) -> str:
        """Return the cached URL, or join/start a discovery round."""
        if self._resolved is not None:
            return self._resolved
        return await self._join_or_start()

    async def force_redetect(self) -> str:
        """Drop the cached URL and re-run discovery.

        Concurrent callers converge on a single round; a round already in
        flight is joined rather than restarted since its result is fresh.
        """
        if self._inflight is None:
            logger.info("Forcing backend re-detection (was %s)", self._resolved)
            self._resolved = None
        return await self._join_or_start()

    async def _join_or_start(self) -> str:
        if self._inflight is None:
            self._rounds += 1
            self._inflight = asyncio.ensure_future(self._discover())
            self._inflight.add_done_callback(self._consume_round_error)
        return await asyncio.shield(self._inflight)

    @staticmethod
    def _consume_round_error(task: asyncio.Task[str]) -> None:
        # Marks the error retrieved even when every waiter was cancelled
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Discovery round failed: %s", exc)

    async def _discover(self) -> str:
        try:
            candidates = self._registry.candidates()
            try:
                url = await self._prober.probe(candidates)
                degraded = False
            except NoReachableEndpointError:
                fallback = self._registry.fallback_url or self._last_known
                if fallback is None:
                    logger.error(
                        "Backend discovery failed and no fallback is configured",
                        extra={"error_kind": "no_reachable_endpoint"},
                    )
                    raise
                logger.warning(
                    "Backend discovery failed, running degraded on %s",
                    fallback,
                    extra={"endpoint": fallback, "error_kind": "degraded"},
                )
                url = fallback
                degraded = True

            self._resolved = url
            self._degraded = degraded
            self._last_resolved_at = datetime.now(timezone.utc)
            if not degraded:
                self._last_known = url
            return url
        finally:
            self._inflight = None

    def get_stats(self) -> dict:
        """Return coordinator state for diagnostics."""
        return {
            "current_url": self._resolved,
            "is_detecting": self.is_detecting,
            "degraded": self._degraded,
            "discovery_rounds": self._rounds,
            "last_resolved_at": self._last_resolved_at.isoformat() if self._last_resolved_at else None,
            "candidates": self._registry.candidates(),
        }
