"""LLM service for OpenAI-compatible chat completions."""

import hashlib
import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

import redis.asyncio as redis
from openai import AsyncOpenAI

from fitrank.config import settings
from fitrank.errors import NotConfiguredError, RankingServiceError

logger = logging.getLogger(__name__)


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class LLMService:
    """
    Service for LLM interactions with an OpenAI-compatible endpoint.

    Features:
    - Per-tenant credentials and model parameters
    - Caching (Redis-based)
    - Per-tenant daily cost tracking with a hard limit (UTC days)
    """

    def __init__(self, today: Callable[[], date] = _utc_today):
        self._clients: Dict[Tuple[str, str], AsyncOpenAI] = {}
        self._redis: Optional[redis.Redis] = None
        self._today = today
        self._cost_day: date = today()
        self._daily_costs: Dict[str, float] = defaultdict(float)
        self._call_count: int = 0
        self._cache_hits: int = 0

    def _get_client(self, api_key: Optional[str] = None) -> AsyncOpenAI:
        """Get or create a client for the given credential."""
        api_key = api_key or settings.openai_api_key
        if not api_key:
            raise NotConfiguredError("Ranking service API key not configured")

        base_url = settings.openai_base_url
        key = (api_key, base_url)
        if key not in self._clients:
            kwargs: Dict[str, Any] = {"api_key": api_key}
            if base_url:
                kwargs["base_url"] = base_url
            self._clients[key] = AsyncOpenAI(**kwargs)
        return self._clients[key]

    async def _get_redis(self) -> Optional[redis.Redis]:
        """Get or create Redis connection for caching."""
        if not settings.llm_cache_enabled:
            return None

        if self._redis is None:
            try:
                self._redis = redis.from_url(
                    settings.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
            except Exception as e:
                logger.warning(f"Failed to connect to Redis for LLM cache: {e}")
                return None
        return self._redis

    def _get_cache_key(self, prompt: str, system_prompt: str, model: str) -> str:
        """Generate cache key for prompt."""
        combined = f"{system_prompt}:{prompt}:{model}"
        key_hash = hashlib.sha256(combined.encode('utf-8')).hexdigest()
        return f"llm_cache:{key_hash}"

    async def _cache_get(self, key: str) -> Optional[str]:
        redis_client = await self._get_redis()
        if redis_client is None:
            return None
        try:
            return await redis_client.get(key)
        except Exception as e:
            logger.warning(f"LLM cache read failed: {e}")
            return None

    async def _cache_set(self, key: str, value: str) -> None:
        redis_client = await self._get_redis()
        if redis_client is None:
            return
        try:
            await redis_client.setex(key, settings.llm_cache_ttl_seconds, value)
        except Exception as e:
            logger.warning(f"LLM cache write failed: {e}")

    def _roll_day(self) -> None:
        """Start fresh counters when the UTC date changes."""
        today = self._today()
        if today != self._cost_day:
            logger.info(f"New cost day {today.isoformat()}, resetting LLM counters")
            self.reset_daily_stats()
            self._cost_day = today

    def _check_cost_limit(self, tenant: str) -> bool:
        """Check if the tenant's daily cost limit is exceeded."""
        if not settings.track_llm_costs:
            return True

        spent = self._daily_costs.get(tenant, 0.0)
        if spent >= settings.llm_cost_limit_per_day:
            logger.warning(
                f"Daily LLM cost limit reached for {tenant or 'default'}: "
                f"${spent:.2f} >= ${settings.llm_cost_limit_per_day:.2f}"
            )
            return False
        return True

    def _estimate_cost(self, model: str, prompt_tokens: int, completion_tokens: int) -> float:
        """
        Estimate cost for LLM call.

        Pricing (approximate, per 1K tokens):
        - gpt-4o-mini: $0.00015 input, $0.0006 output
        - gpt-4o / gpt-4: $0.0025 input, $0.01 output
        """
        name = model.lower()
        if "mini" in name:
            input_rate, output_rate = 0.00015, 0.0006
        elif "gpt-4" in name:
            input_rate, output_rate = 0.0025, 0.01
        else:
            input_rate, output_rate = 0.0015, 0.002

        return (prompt_tokens / 1000) * input_rate + (completion_tokens / 1000) * output_rate

    async def call_llm(
        self,
        prompt: str,
        system_prompt: str = "",
        temperature: Optional[float] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        api_key: Optional[str] = None,
        tenant: str = "",
        use_cache: bool = True,
        store_in_cache: bool = True,
    ) -> str:
        """
        Call LLM with a prompt and return text response.

        Args:
            prompt: User prompt
            system_prompt: System prompt/instructions
            temperature: Temperature (defaults to settings.llm_temperature)
            model: Model name (defaults to settings.llm_model)
            max_tokens: Completion token limit (defaults to settings.llm_max_tokens)
            api_key: Tenant credential (defaults to settings.openai_api_key)
            tenant: Tenant the spend is charged to
            use_cache: Whether to read from the cache
            store_in_cache: Whether to write the reply to the cache. Callers
                that validate replies pass False and call ``store_cached``
                once the reply is known to be usable.

        Returns:
            LLM response text

        Raises:
            NotConfiguredError: If no credential is available
            RankingServiceError: If the tenant's daily cost limit is exhausted
        """
        model = model or settings.llm_model
        temperature = temperature if temperature is not None else settings.llm_temperature
        max_tokens = max_tokens or settings.llm_max_tokens

        self._roll_day()
        if not self._check_cost_limit(tenant):
            raise RankingServiceError(f"Daily LLM cost limit exceeded for {tenant or 'default'}")

        cache_key = self._get_cache_key(prompt, system_prompt, model)
        if use_cache and settings.llm_cache_enabled:
            cached = await self._cache_get(cache_key)
            if cached:
                logger.debug(f"LLM cache hit for prompt: {prompt[:50]}...")
                self._cache_hits += 1
                return cached

        client = self._get_client(api_key)

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=settings.llm_timeout_seconds,
            )
        except Exception as e:
            logger.error(f"LLM API call failed: {e}")
            raise

        result = response.choices[0].message.content
        if result is None:
            result = ""

        if settings.track_llm_costs and response.usage is not None:
            prompt_tokens = response.usage.prompt_tokens
            completion_tokens = response.usage.completion_tokens
            cost = self._estimate_cost(model, prompt_tokens, completion_tokens)
            self._daily_costs[tenant] += cost
            logger.debug(
                f"LLM call cost for {tenant or 'default'}: ${cost:.4f} "
                f"(tokens: {prompt_tokens}+{completion_tokens}, today: ${self._daily_costs[tenant]:.2f})"
            )

        self._call_count += 1

        if use_cache and store_in_cache and result:
            await self.store_cached(prompt, system_prompt, model, result)

        return result

    async def store_cached(self, prompt: str, system_prompt: str, model: Optional[str], result: str) -> None:
        """Cache a reply under the same key ``call_llm`` reads."""
        if not settings.llm_cache_enabled or not result:
            return
        await self._cache_set(self._get_cache_key(prompt, system_prompt, model or settings.llm_model), result)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get LLM service statistics.

        Returns:
            Dictionary with call count, today's cost (total and per tenant), etc.
        """
        self._roll_day()
        return {
            "call_count": self._call_count,
            "cache_hits": self._cache_hits,
            "cost_day": self._cost_day.isoformat(),
            "daily_cost": sum(self._daily_costs.values()),
            "daily_cost_by_tenant": dict(self._daily_costs),
            "cost_limit": settings.llm_cost_limit_per_day,
            "cache_enabled": settings.llm_cache_enabled,
        }

    def reset_daily_stats(self):
        """Reset daily costs and call counts (runs automatically at UTC midnight)."""
        self._daily_costs.clear()
        self._call_count = 0
        self._cache_hits = 0
        logger.info("LLM daily stats reset")

    async def close(self):
        """Close connections."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
        for client in self._clients.values():
            await client.close()
        self._clients.clear()


# Global LLM service instance
llm_service = LLMService()
