"""Bounded retry policy."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry policy with fixed or exponential delay.

    Attempt numbers are 1-based: attempt 1 is the first try, so a policy with
    max_attempts=2 allows exactly one retry.

    Attributes:
        max_attempts: Total attempts including the first (>= 1)
        delay_seconds: Wait before the first retry
        backoff: Multiplier applied to the delay for each further retry (1.0 = fixed)
    """

    max_attempts: int = 2
    delay_seconds: float = 10.0
    backoff: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")
        if self.backoff < 1.0:
            raise ValueError("backoff must be >= 1.0")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before the given attempt (0 for the first)."""
        if attempt <= 1:
            return 0.0
        return self.delay_seconds * (self.backoff ** (attempt - 2))

    def wait_before(self, attempt: int) -> None:
        """Sleep for the delay that precedes an attempt."""
        delay = self.delay_for(attempt)
        if delay > 0:
            logger.info(f"Waiting {delay:g} seconds before attempt {attempt}/{self.max_attempts}...")
            time.sleep(delay)

    def call(
        self,
        func: Callable[[], T],
        is_retryable: Callable[[Exception], bool],
        on_retry: Optional[Callable[[int, Exception], None]] = None,
    ) -> T:
        """Call func, retrying retryable failures within the attempt budget.

        Args:
            func: Zero-argument callable
            is_retryable: Decides whether an exception is worth another attempt
            on_retry: Called with (next attempt number, exception) before waiting

        Returns:
            Result of the first successful call

        Raises:
            Exception: The last exception, if not retryable or attempts ran out
        """
        attempt = 1
        while True:
            try:
                return func()
            except Exception as e:
                if attempt >= self.max_attempts or not is_retryable(e):
                    raise
                attempt += 1
                if on_retry is not None:
                    on_retry(attempt, e)
                self.wait_before(attempt)
