from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from fastapi import HTTPException

from restock.core.settings import S

R = TypeVar("R")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(max_attempts=max(1, S.pipeline_max_attempts), base_delay=S.pipeline_base_delay_seconds)

    def delay_for(self, attempt: int) -> float:
        """Delay after the given 1-based failed attempt: 1s, 2s, 4s, ..."""
        return self.base_delay * (self.multiplier ** (attempt - 1))


def is_retryable(exc: BaseException) -> bool:
    # 4xx-style errors will not change on a second try.
    return not isinstance(exc, HTTPException)


def call_with_retry(
    fn: Callable[[], R],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
) -> R:
    """Run ``fn`` up to ``policy.max_attempts`` times, sleeping between failures.

    The last exception is re-raised once attempts are exhausted.
    """
    attempt = 1
    while True:
        try:
            return fn()
        except Exception as exc:
            if attempt >= policy.max_attempts or not is_retryable(exc):
                raise
            delay = policy.delay_for(attempt)
            if on_retry is not None:
                on_retry(attempt, exc, delay)
            sleep(delay)
            attempt += 1
