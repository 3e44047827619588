"""
Countdown timer for a test attempt.

Remaining time is measured against a clock instead of being decremented per
tick, so a Streamlit rerun (or a missed tick) never drifts the countdown.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from engine import WARNING_THRESHOLDS_SECONDS

logger = logging.getLogger(__name__)

WARNING = "warning"
EXPIRED = "expired"

WARNING_MESSAGES = {
    300: "5 minutes remaining! Your test will be automatically submitted when time runs out.",
    60: "1 minute remaining! Finish your test quickly.",
}
EXPIRED_MESSAGE = "Time is up! Your test has been automatically submitted."


@dataclass
class TimerEvent:
    kind: str
    message: str
    threshold: Optional[int] = None


class CountdownTimer:
    """Counts down from duration_seconds once started; emits each warning and the expiry once."""

    def __init__(
        self,
        duration_seconds: int,
        clock: Callable[[], float] = time.monotonic,
        thresholds=WARNING_THRESHOLDS_SECONDS,
    ):
        self.duration_seconds = max(0, int(duration_seconds))
        self._clock = clock
        # Thresholds at or above the full duration can never be "reached"
        self._pending = sorted((t for t in thresholds if t < self.duration_seconds), reverse=True)
        self._started_at: Optional[float] = None
        self._stopped_remaining: Optional[float] = None
        self._expired_fired = False

    def start(self):
        if self._started_at is None:
            self._started_at = self._clock()

    @property
    def started(self) -> bool:
        return self._started_at is not None

    @property
    def stopped(self) -> bool:
        return self._stopped_remaining is not None

    def elapsed_seconds(self) -> float:
        return self.duration_seconds - self.remaining_seconds()

    def remaining_seconds(self) -> float:
        if self._stopped_remaining is not None:
            return self._stopped_remaining
        if self._started_at is None:
            return float(self.duration_seconds)
        elapsed = self._clock() - self._started_at
        return max(0.0, self.duration_seconds - elapsed)

    @property
    def expired(self) -> bool:
        return self.remaining_seconds() <= 0

    def stop(self):
        """Freeze the remaining time (on submission)."""
        if self._stopped_remaining is None:
            self._stopped_remaining = self.remaining_seconds()

    def poll(self) -> List[TimerEvent]:
        """Events due since the last poll. Only the smallest crossed threshold is reported."""
        if not self.started or self.stopped or self._expired_fired:
            return []

        remaining = self.remaining_seconds()
        if remaining <= 0:
            self._expired_fired = True
            self._pending = []
            logger.info("Timer expired")
            return [TimerEvent(EXPIRED, EXPIRED_MESSAGE)]

        crossed = [t for t in self._pending if remaining <= t]
        if not crossed:
            return []
        self._pending = [t for t in self._pending if t not in crossed]
        threshold = min(crossed)
        message = WARNING_MESSAGES.get(threshold, f"{threshold // 60} minutes remaining!")
        logger.info(f"Timer warning at {threshold}s (remaining {remaining:.0f}s)")
        return [TimerEvent(WARNING, message, threshold)]
