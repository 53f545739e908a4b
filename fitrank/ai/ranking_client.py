"""Generative ranking of filtered candidates."""

import asyncio
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from fitrank.ai.llm_service import LLMService, llm_service
from fitrank.ai.prompts import build_ranking_prompt
from fitrank.ai.rate_limiter import RankingRateLimiter, ranking_rate_limiter
from fitrank.ai.response_repair import RepairStage, repair_ranking_response
from fitrank.ai.retry import BackoffPolicy, retry_with_backoff
from fitrank.config import settings
from fitrank.metrics import ranking_duration_seconds, ranking_entries_dropped_total
from fitrank.recommend.types import (
    CatalogItemRecord,
    RankedEntry,
    RankingCandidate,
    ShopperProfile,
)
from fitrank.tenant.settings_store import ResolvedSettings

logger = logging.getLogger(__name__)

DROP_MALFORMED = "malformed"
DROP_OUT_OF_RANGE = "out_of_range"
DROP_INVALID_SCORE = "invalid_score"
DROP_BELOW_THRESHOLD = "below_threshold"


def to_candidate(index: int, item: CatalogItemRecord, description_chars: Optional[int] = None) -> RankingCandidate:
    """Project a cached record into the view sent to the ranking service."""
    limit = description_chars if description_chars is not None else settings.candidate_description_chars
    visual: Dict[str, Any] = {}
    if item.has_visual_analysis:
        visual = {
            "colors": item.detected_colors,
            "colorSeasons": item.color_seasons,
            "silhouette": item.silhouette,
            "styleTags": item.style_tags,
            "fabric": item.fabric,
            "designDetails": item.design_details,
            "pattern": item.pattern,
        }
        visual = {k: v for k, v in visual.items() if v}
    return RankingCandidate(
        index=index,
        title=item.title,
        description=(item.description or "")[:limit],
        category=item.category,
        tags=list(item.tags),
        price=item.price,
        in_stock=item.in_stock,
        sizes=list(item.available_sizes),
        visual=visual,
    )


def build_candidates(items: List[CatalogItemRecord]) -> List[RankingCandidate]:
    return [to_candidate(index, item) for index, item in enumerate(items)]


def _coerce_index(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _coerce_score(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    score = float(value)
    if math.isnan(score) or score < 0:
        return None
    return min(score, 100.0)


def validate_entries(
    raw_entries: List[Any],
    candidate_count: int,
    min_score: float,
) -> Tuple[List[RankedEntry], Dict[str, int]]:
    """
    Coerce reply entries into RankedEntries.

    Entries with an index outside ``[0, candidate_count)``, a missing or
    negative score, or a score below ``min_score`` are dropped and counted.
    Duplicate indexes are kept.

    Returns:
        (valid entries in reply order, drop counts by reason)
    """
    entries: List[RankedEntry] = []
    dropped = {
        DROP_MALFORMED: 0,
        DROP_OUT_OF_RANGE: 0,
        DROP_INVALID_SCORE: 0,
        DROP_BELOW_THRESHOLD: 0,
    }

    for raw in raw_entries:
        if not isinstance(raw, dict):
            dropped[DROP_MALFORMED] += 1
            continue

        index = _coerce_index(raw.get("index"))
        if index is None or not 0 <= index < candidate_count:
            dropped[DROP_OUT_OF_RANGE] += 1
            continue

        score = _coerce_score(raw.get("score"))
        if score is None:
            dropped[DROP_INVALID_SCORE] += 1
            continue

        if score < min_score:
            dropped[DROP_BELOW_THRESHOLD] += 1
            continue

        entries.append(
            RankedEntry(
                index=index,
                score=score,
                rationale=str(raw.get("reasoning") or ""),
                size_advice=str(raw.get("sizeAdvice") or ""),
                styling_tip=str(raw.get("stylingTip") or ""),
            )
        )

    for reason, count in dropped.items():
        if count:
            ranking_entries_dropped_total.labels(reason=reason).inc(count)
    return entries, dropped


@dataclass
class RankingOutcome:
    """Validated reply plus bookkeeping for observability."""

    entries: List[RankedEntry]
    repair_stage: RepairStage
    raw_count: int
    retries: int = 0
    dropped: Dict[str, int] = field(default_factory=dict)

    @property
    def dropped_out_of_range(self) -> int:
        return self.dropped.get(DROP_OUT_OF_RANGE, 0)

    @property
    def is_empty(self) -> bool:
        return not self.entries


class GenerativeRankingClient:
    """
    Ranks candidates through the generative ranking service.

    Features:
    - Prompt construction with profile and styling guidance
    - Per-tenant request quota
    - Retry with exponential backoff on transient failures
    - Reply repair and per-entry validation
    """

    def __init__(
        self,
        llm: Optional[LLMService] = None,
        rate_limiter: Optional[RankingRateLimiter] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.llm = llm or llm_service
        self.rate_limiter = rate_limiter or ranking_rate_limiter
        self._sleep = sleep

    async def rank(
        self,
        profile: ShopperProfile,
        items: List[CatalogItemRecord],
        config: ResolvedSettings,
        count: int,
        min_score: float,
    ) -> RankingOutcome:
        """
        Ask the ranking service to score the candidates.

        Args:
            profile: Shopper profile
            items: Filtered candidates; reply indexes refer to this list
            config: Resolved tenant settings
            count: Number of recommendations requested
            min_score: Threshold on the 0-100 scale

        Returns:
            RankingOutcome (possibly with zero entries)

        Raises:
            RateLimitExceededError: If the tenant quota is exhausted
            RankingParseError: If the reply cannot be repaired
            Exception: Whatever the transport raised once retries are exhausted
        """
        candidates = build_candidates(items)
        prompt = build_ranking_prompt(
            config.recommendation_prompt,
            profile,
            [c.to_payload() for c in candidates],
            count,
            min_score,
        )

        await self.rate_limiter.acquire(
            config.tenant,
            requests_per_minute=config.rate_limit.requests_per_minute,
            requests_per_day=config.rate_limit.requests_per_day,
            enabled=config.rate_limit.enabled,
        )

        retries = 0

        def _count_retry(attempt: int, delay: float, error: BaseException) -> None:
            nonlocal retries
            retries = attempt

        async def _call() -> str:
            return await self.llm.call_llm(
                prompt=prompt,
                system_prompt=config.system_prompt,
                temperature=config.temperature,
                model=config.model,
                max_tokens=config.max_tokens,
                api_key=config.api_key,
                tenant=config.tenant,
                store_in_cache=False,
            )

        policy = BackoffPolicy(
            max_retries=config.retry.max_retries,
            initial_delay=config.retry.initial_delay_seconds,
            max_delay=config.retry.max_delay_seconds,
            jitter_ratio=config.retry.jitter_ratio,
        )

        logger.info(
            f"Ranking {len(candidates)} candidates for {config.tenant} "
            f"(model: {config.model}, count: {count}, min score: {min_score})"
        )
        started = time.perf_counter()
        try:
            text = await retry_with_backoff(_call, policy=policy, sleep=self._sleep, on_retry=_count_retry)
        finally:
            ranking_duration_seconds.observe(time.perf_counter() - started)

        repaired = repair_ranking_response(text)
        entries, dropped = validate_entries(repaired.entries, len(candidates), min_score)

        # Cache only replies that yielded usable entries
        if entries:
            await self.llm.store_cached(prompt, config.system_prompt, config.model, text)

        if any(dropped.values()):
            logger.info(
                f"Dropped ranking entries for {config.tenant}: "
                + ", ".join(f"{k}={v}" for k, v in dropped.items() if v)
            )

        return RankingOutcome(
            entries=entries,
            repair_stage=repaired.stage,
            raw_count=len(repaired.entries),
            retries=retries,
            dropped=dropped,
        )
