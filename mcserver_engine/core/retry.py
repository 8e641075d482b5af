# mcserver_engine/core/retry.py
"""Bounded polling policy used by every wait loop in the orchestrators."""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from mcserver_engine.core.errors import WaitTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attempt ceiling plus delay between attempts.

    Backoff of 1.0 means a fixed interval. `sleep` is injectable so tests
    can run wait loops without real delays.
    """

    max_attempts: int = 30
    interval_seconds: float = 2.0
    backoff: float = 1.0
    max_interval_seconds: float = 30.0
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        if self.backoff < 1.0:
            raise ValueError("backoff must be >= 1.0")

    def delay_for(self, attempt: int) -> float:
        """Delay after the given 1-based attempt."""
        delay = self.interval_seconds * (self.backoff ** (attempt - 1))
        return min(delay, self.max_interval_seconds)

    @property
    def ceiling_seconds(self) -> float:
        return sum(self.delay_for(a) for a in range(1, self.max_attempts))

    def pause(self, seconds: Optional[float] = None) -> None:
        """Settle delay outside of a wait loop."""
        self.sleep(self.interval_seconds if seconds is None else seconds)

    def wait_until(
        self,
        probe: Callable[[], Optional[T]],
        waiting_for: str,
        message: Optional[str] = None,
    ) -> T:
        """
        Call `probe` until it returns a truthy value.

        Exceptions raised by the probe propagate immediately; only
        non-convergence is turned into WaitTimeoutError.
        """
        for attempt in range(1, self.max_attempts + 1):
            result = probe()
            if result:
                if attempt > 1:
                    logger.debug(f"[retry] {waiting_for} converged after {attempt} attempts")
                return result

            if attempt < self.max_attempts:
                delay = self.delay_for(attempt)
                logger.debug(
                    f"[retry] {waiting_for} attempt {attempt}/{self.max_attempts}, next in {delay:.1f}s"
                )
                self.sleep(delay)

        raise WaitTimeoutError(
            message or f"Timed out {waiting_for} after {self.max_attempts} attempts",
            waiting_for=waiting_for,
            attempts=self.max_attempts,
        )
