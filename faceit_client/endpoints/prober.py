"""Backend reachability prober.

Issues a lightweight GET against a fixed health path on each candidate and
returns the first one that answers. A candidate counts as reachable when it
returns any non-5xx status before its timeout; a timeout or transport error
marks only that candidate as failed.

Two strategies:
- sequential (default): candidates in priority order, short-circuit on the
  first reachable one, so unreachable hosts behind it are never contacted.
- parallel: all candidates at once, earliest success wins and the remaining
  probes are cancelled.
"""

from __future__ import annotations

import asyncio
import logging
import time

import httpx

from faceit_client.middleware.error_handler import NoReachableEndpointError

logger = logging.getLogger(__name__)


class EndpointProber:
    """Finds a reachable backend among candidate base URLs.

    Args:
        probe_path: Path appended to each candidate (default "/system/health/").
        timeout_seconds: Per-candidate timeout (default 5).
        strategy: "sequential" or "parallel".
    """

    def __init__(
        self,
        probe_path: str = "/system/health/",
        timeout_seconds: float = 5.0,
        strategy: str = "sequential",
    ) -> None:
        if strategy not in ("sequential", "parallel"):
            raise ValueError(f"Unknown probe strategy: {strategy!r}")
        self._probe_path = "/" + probe_path.lstrip("/")
        self._timeout = timeout_seconds
        self._strategy = strategy

    def probe_url_for(self, candidate: str) -> str:
        return f"{candidate.rstrip('/')}{self._probe_path}"

    async def probe(self, candidates: list[str]) -> str:
        """Return the first reachable candidate.

        Raises
        ------
        NoReachableEndpointError
            If the list is empty or every candidate is unreachable.
        """
        if not candidates:
            raise NoReachableEndpointError([], "No candidate endpoints configured")

        logger.info(
            "Starting backend discovery across %d candidates (%s)",
            len(candidates),
            self._strategy,
        )
        started = time.monotonic()

        if self._strategy == "parallel":
            found = await self._probe_parallel(candidates)
        else:
            found = await self._probe_sequential(candidates)

        duration_ms = round((time.monotonic() - started) * 1000, 1)
        if found is None:
            logger.warning(
                "No reachable backend among %d candidates",
                len(candidates),
                extra={"error_kind": "no_reachable_endpoint", "duration_ms": duration_ms},
            )
            raise NoReachableEndpointError(candidates)

        logger.info(
            "Selected backend %s",
            found,
            extra={"endpoint": found, "duration_ms": duration_ms},
        )
        return found

    async def is_reachable(self, candidate: str) -> bool:
        """Probe a single candidate; never raises for network conditions."""
        reachable, _reason = await self.check(candidate)
        return reachable

    async def check(self, candidate: str) -> tuple[bool, str | None]:
        """Probe a single candidate and return (reachable, failure reason)."""
        url = self.probe_url_for(candidate)
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout)) as client:
                response = await client.get(url, headers={"Content-Type": "application/json"})
        except httpx.TimeoutException:
            logger.info("Timeout probing %s", candidate, extra={"endpoint": candidate, "error_kind": "timeout"})
            return False, "timeout"
        except httpx.TransportError as exc:
            logger.info(
                "Error probing %s: %s",
                candidate,
                exc,
                extra={"endpoint": candidate, "error_kind": "transport"},
            )
            return False, str(exc) or exc.__class__.__name__

        if response.status_code >= 500:
            logger.info(
                "Backend at %s responded with status %d",
                candidate,
                response.status_code,
                extra={"endpoint": candidate, "error_kind": "server_error", "status_code": response.status_code},
            )
            return False, f"HTTP {response.status_code}"

        logger.debug("Backend reachable at %s", candidate, extra={"endpoint": candidate})
        return True, None

    async def _probe_sequential(self, candidates: list[str]) -> str | None:
        for candidate in candidates:
            if await self.is_reachable(candidate):
                return candidate
        return None

    async def _probe_parallel(self, candidates: list[str]) -> str | None:
        tasks = {
            asyncio.ensure_future(self.is_reachable(candidate)): candidate
            for candidate in candidates
        }
        pending = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                # Among probes finishing together, prefer the higher-priority candidate
                winners = [tasks[task] for task in done if task.result()]
                if winners:
                    return min(winners, key=candidates.index)
            return None
        finally:
            for task in pending:
                task.cancel()
