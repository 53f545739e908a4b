"""Exponential backoff for calls to the ranking service."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from fitrank.errors import RankingParseError, RateLimitExceededError
from fitrank.metrics import ranking_retries_total

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_STATUS_CODES = frozenset({429, 503})
TRANSIENT_MARKERS = ("overloaded", "rate limit")


@dataclass(frozen=True)
class BackoffPolicy:
    """Retry policy for transient ranking failures."""

    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    jitter_ratio: float = 0.3

    def delay_for(self, attempt: int, rand: Callable[[], float] = random.random) -> float:
        """Delay before retry number ``attempt`` (0-based), jitter included."""
        base = min(self.initial_delay * (2 ** attempt), self.max_delay)
        return base + rand() * self.jitter_ratio * base


def _status_code(error: BaseException) -> Optional[int]:
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_transient_error(error: BaseException) -> bool:
    """
    True for failures worth retrying: HTTP 429/503, or an error message that
    mentions overload or rate limiting.

    Parse failures and local quota exhaustion are never transient.
    """
    if isinstance(error, (RankingParseError, RateLimitExceededError)):
        return False
    if _status_code(error) in TRANSIENT_STATUS_CODES:
        return True
    message = str(error).lower()
    return any(marker in message for marker in TRANSIENT_MARKERS)


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    policy: Optional[BackoffPolicy] = None,
    is_retryable: Callable[[BaseException], bool] = is_transient_error,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_retry: Optional[Callable[[int, float, BaseException], None]] = None,
) -> T:
    """
    Call ``func`` until it succeeds, retrying only transient failures.

    Args:
        func: Zero-argument coroutine factory
        policy: Backoff policy (defaults to 3 retries, 1s initial, 10s max)
        is_retryable: Classifier for failures
        sleep: Sleep coroutine (injectable for tests)
        on_retry: Called with (retry number, delay, error) before each sleep

    Returns:
        The first successful result

    Raises:
        The last error once retries are exhausted, or any non-retryable
        error immediately.
    """
    policy = policy or BackoffPolicy()
    attempt = 0
    while True:
        try:
            return await func()
        except Exception as e:
            if not is_retryable(e):
                raise
            if attempt >= policy.max_retries:
                logger.error(f"Ranking call failed after {policy.max_retries} retries: {e}")
                raise

            delay = policy.delay_for(attempt)
            attempt += 1
            ranking_retries_total.inc()
            logger.warning(
                f"Transient ranking failure ({type(e).__name__}: {e}), "
                f"retrying in {delay:.2f}s (retry {attempt}/{policy.max_retries})"
            )
            if on_retry is not None:
                on_retry(attempt, delay, e)
            await sleep(delay)
