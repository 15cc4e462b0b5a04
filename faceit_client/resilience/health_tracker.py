"""Process-wide connection health tracker.

Records consecutive request failures and decides when a new discovery
round is warranted. Redetection needs both a sustained failure run
(``failure_threshold`` consecutive failures) and an elapsed cooldown since
the previous attempt, so a backend that stays down is re-probed at most
once per cooldown window instead of on every request.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class HealthState:
    """Mutable health counters (monotonic timestamps)."""

    consecutive_failures: int = 0
    last_success_at: float | None = None
    last_detection_at: float | None = None


class ConnectionHealthTracker:
    """Failure counter with threshold + cooldown redetection gate.

    Args:
        failure_threshold: Consecutive failures on record before the next
            failure may trigger redetection.
        cooldown_seconds: Minimum seconds between redetection attempts.
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        cooldown_seconds: float = 30,
    ) -> None:
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        self._failure_threshold = failure_threshold
        self._cooldown_seconds = cooldown_seconds
        self._state = HealthState()

    @property
    def state(self) -> HealthState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._state.consecutive_failures

    @property
    def failure_threshold(self) -> int:
        return self._failure_threshold

    def report_success(self) -> None:
        """Reset the failure run and stamp the last success."""
        if self._state.consecutive_failures > 0:
            logger.info(
                "Connection restored after %d consecutive failures",
                self._state.consecutive_failures,
            )
        self._state.consecutive_failures = 0
        self._state.last_success_at = time.monotonic()

    def report_failure(self) -> None:
        self._state.consecutive_failures += 1
        logger.debug(
            "Connection failure reported (%d/%d)",
            self._state.consecutive_failures,
            self._failure_threshold,
        )

    def should_detect_now(self) -> bool:
        """True once the failure run reaches the threshold and the cooldown has elapsed."""
        if self._state.consecutive_failures < self._failure_threshold:
            return False
        return self.cooldown_remaining() == 0

    def mark_detection_attempted(self) -> None:
        """Stamp the redetection time, whatever the round's outcome."""
        self._state.last_detection_at = time.monotonic()

    def cooldown_remaining(self) -> float:
        """Seconds until another redetection is allowed (0 if allowed now)."""
        if self._state.last_detection_at is None:
            return 0
        elapsed = time.monotonic() - self._state.last_detection_at
        return max(0.0, self._cooldown_seconds - elapsed)

    def get_stats(self) -> dict:
        """Return tracker state for diagnostics."""
        now = time.monotonic()
        last_success = self._state.last_success_at
        last_detection = self._state.last_detection_at
        return {
            "consecutive_failures": self._state.consecutive_failures,
            "failure_threshold": self._failure_threshold,
            "cooldown_seconds": self._cooldown_seconds,
            "seconds_since_last_success": None if last_success is None else round(now - last_success, 1),
            "seconds_since_last_detection": None if last_detection is None else round(now - last_detection, 1),
            "cooldown_remaining": round(self.cooldown_remaining(), 1),
            "should_detect_now": self.should_detect_now(),
        }
