"""Per-tenant request quota for the ranking service.

Counts requests in a one-minute window and a calendar-day window (UTC). An
exhausted quota raises straight away; the caller answers from the fallback
scorer instead of waiting.
"""

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from fitrank.errors import RateLimitExceededError

logger = logging.getLogger(__name__)

MINUTE_SECONDS = 60.0


def _next_utc_midnight(now: float) -> float:
    current = datetime.fromtimestamp(now, tz=timezone.utc)
    midnight = (current + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.timestamp()


@dataclass
class QuotaState:
    requests_this_minute: int = 0
    requests_today: int = 0
    minute_reset_at: float = 0.0
    day_reset_at: float = 0.0


class RankingRateLimiter:
    """Fixed-window request counters per tenant."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._states: Dict[str, QuotaState] = {}
        self.locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _state(self, tenant: str) -> QuotaState:
        now = self._clock()
        state = self._states.get(tenant)
        if state is None:
            state = QuotaState(
                minute_reset_at=now + MINUTE_SECONDS,
                day_reset_at=_next_utc_midnight(now),
            )
            self._states[tenant] = state
            return state

        if now >= state.minute_reset_at:
            state.requests_this_minute = 0
            state.minute_reset_at = now + MINUTE_SECONDS
        if now >= state.day_reset_at:
            state.requests_today = 0
            state.day_reset_at = _next_utc_midnight(now)
        return state

    async def acquire(
        self,
        tenant: str,
        requests_per_minute: int,
        requests_per_day: int,
        enabled: bool = True,
    ) -> None:
        """
        Count one ranking request against the tenant's quota.

        Args:
            tenant: Tenant identifier
            requests_per_minute: Minute quota
            requests_per_day: Daily quota
            enabled: When False the request is not limited

        Raises:
            RateLimitExceededError: If either quota is exhausted
        """
        if not enabled:
            return

        async with self.locks[tenant]:
            state = self._state(tenant)
            now = self._clock()

            if state.requests_today >= requests_per_day:
                wait = state.day_reset_at - now
                logger.warning(f"Daily ranking quota exhausted for {tenant} ({requests_per_day}/day)")
                raise RateLimitExceededError(
                    f"Daily ranking quota of {requests_per_day} requests exhausted",
                    wait_seconds=wait,
                )

            if state.requests_this_minute >= requests_per_minute:
                wait = state.minute_reset_at - now
                logger.warning(
                    f"Minute ranking quota exhausted for {tenant} ({requests_per_minute}/min), "
                    f"resets in {wait:.1f}s"
                )
                raise RateLimitExceededError(
                    f"Ranking quota of {requests_per_minute} requests per minute exhausted",
                    wait_seconds=wait,
                )

            state.requests_this_minute += 1
            state.requests_today += 1

    def get_status(self, tenant: str) -> Dict[str, Optional[float]]:
        state = self._state(tenant)
        return {
            "requests_this_minute": state.requests_this_minute,
            "requests_today": state.requests_today,
            "minute_reset_at": state.minute_reset_at,
            "day_reset_at": state.day_reset_at,
        }

    def reset(self, tenant: str) -> None:
        """Clear a tenant's counters (admin action)."""
        self._states.pop(tenant, None)
        logger.info(f"Ranking quota reset for {tenant}")


# Global rate limiter instance
ranking_rate_limiter = RankingRateLimiter()
