"""Lightweight retry helpers.

Used around BigQuery admin calls made by the runner itself. Data-path
retries belong to the Beam runner, not to this module.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry policy parameters."""

    max_attempts: int = 5
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 10.0
    jitter_fraction: float = 0.2

    def delay_for(self, attempt: int) -> float:
        """Backoff before retrying after the given (1-based) failed attempt."""
        delay = min(self.base_delay_seconds * (2 ** (attempt - 1)), self.max_delay_seconds)
        jitter = delay * self.jitter_fraction * (2 * random.random() - 1)
        return max(0.0, delay + jitter)


def retry_call(
    func: Callable[[], T],
    *,
    policy: RetryPolicy = RetryPolicy(),
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
) -> T:
    """Call `func` with retries and exponential backoff.

    The last exception is re-raised once `policy.max_attempts` is exhausted.
    Exceptions outside `retry_on` propagate immediately.
    """
    if policy.max_attempts < 1:
        raise ValueError("RetryPolicy.max_attempts must be at least 1")

    attempt = 0
    while True:
        attempt += 1
        try:
            return func()
        except retry_on as exc:  # noqa: PERF203
            if attempt >= policy.max_attempts:
                raise
            if on_retry is not None:
                on_retry(attempt, exc)
            time.sleep(policy.delay_for(attempt))
