"""
Circuit breaker guarding the primary search channel.

After a run of consecutive failures the breaker opens and the primary
channel is skipped until the reset time passes; the next call is then let
through as a trial (half-open).
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from .errors import CircuitOpen


logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker.

    Attributes:
        failure_threshold: Consecutive failures that open the circuit
        reset_seconds: How long the circuit stays open
        state: Current circuit state
        consecutive_failures: Failures since the last success
    """

    def __init__(self, failure_threshold: int = 5, reset_seconds: float = 30.0):
        self.failure_threshold = failure_threshold
        self.reset_seconds = reset_seconds
        self.state = CircuitState.CLOSED
        self.consecutive_failures = 0
        self.opened_until: Optional[datetime] = None

    def check(self) -> None:
        """
        Raise CircuitOpen while the circuit is open.

        Moves an expired open circuit to half-open so one trial call passes.
        """
        if self.state != CircuitState.OPEN:
            return

        now = datetime.now()
        if self.opened_until is not None and now < self.opened_until:
            raise CircuitOpen(reset_in=self.opened_until - now)

        self.state = CircuitState.HALF_OPEN
        logger.info("Circuit half-open, allowing a trial request")

    def record_success(self) -> None:
        if self.state != CircuitState.CLOSED:
            logger.info("Circuit closed after successful request")
        self.state = CircuitState.CLOSED
        self.consecutive_failures = 0
        self.opened_until = None

    def record_failure(self) -> None:
        self.consecutive_failures += 1

        if self.state == CircuitState.HALF_OPEN or self.consecutive_failures >= self.failure_threshold:
            self.state = CircuitState.OPEN
            self.opened_until = datetime.now() + timedelta(seconds=self.reset_seconds)
            logger.warning(
                f"Circuit opened after {self.consecutive_failures} consecutive failures, "
                f"skipping for {self.reset_seconds:.0f}s"
            )
