"""Recommendation engine: cache -> filters -> rank or fallback -> merge."""

import asyncio
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fitrank.ai.ranking_client import GenerativeRankingClient
from fitrank.catalog import cache_store
from fitrank.catalog.filters import CandidateFilterPipeline, FilterConstraints
from fitrank.errors import NotConfiguredError, RankingParseError, RateLimitExceededError
from fitrank.logging_config import get_logger
from fitrank.metrics import recommendation_fallbacks_total, recommendation_requests_total
from fitrank.recommend import fallback
from fitrank.recommend.merger import merge
from fitrank.recommend.types import (
    EmptyReason,
    RankedEntry,
    RecommendationRequest,
    RecommendationResult,
    RecommendationSource,
    RecommendationStatus,
)
from fitrank.tenant.settings_store import ResolvedSettings, resolve_settings

FALLBACK_DISABLED = "disabled"
FALLBACK_TIMEOUT = "timeout"
FALLBACK_RATE_LIMITED = "rate_limited"
FALLBACK_PARSE_ERROR = "parse_error"
FALLBACK_SERVICE_ERROR = "service_error"
FALLBACK_NO_ENTRIES = "no_usable_entries"


class RecommendationEngine:
    """
    Produces ranked recommendations for one shopper request.

    Features:
    - Fully resolved tenant settings, no inline defaults
    - Hard-constraint filtering of the priority-ordered cache
    - Generative ranking under the request deadline
    - Deterministic fallback on any ranking failure
    - Explicit "no matches" outcomes distinct from errors
    """

    def __init__(self, ranking_client: Optional[GenerativeRankingClient] = None):
        self.ranking_client = ranking_client or GenerativeRankingClient()

    @staticmethod
    def check_configuration(config: ResolvedSettings) -> None:
        """Raise NotConfiguredError if ranking is enabled without a credential."""
        if config.ranking_enabled and not config.has_credential:
            raise NotConfiguredError(
                f"Ranking is enabled for {config.tenant} but no API key is configured"
            )

    async def recommend(self, db: AsyncSession, request: RecommendationRequest) -> RecommendationResult:
        """
        Run the full pipeline for a request.

        Args:
            db: Database session
            request: Caller request

        Returns:
            RecommendationResult with status ``ok`` or ``no_matches``

        Raises:
            NotConfiguredError: If the tenant's ranking setup is incomplete
        """
        log = get_logger(__name__, tenant=request.tenant)
        loop = asyncio.get_running_loop()

        config = await resolve_settings(db, request.tenant)
        self.check_configuration(config)

        count = request.count or config.number_of_suggestions
        min_score = request.min_score if request.min_score is not None else config.minimum_match_score
        scan_limit = request.max_candidates or config.max_products_to_scan
        timeout = request.timeout_seconds or config.request_timeout_seconds
        deadline = loop.time() + timeout
        profile = request.profile

        stats: Dict[str, int] = {}
        items = await cache_store.query(
            db,
            request.tenant,
            in_stock=True if request.in_stock_only else None,
            limit=scan_limit,
        )
        stats["cached"] = len(items)
        if not items:
            log.info("No cached catalog items")
            return self._finish(RecommendationResult.no_matches(EmptyReason.NO_CATALOG, stats=stats))

        constraints = FilterConstraints.from_profile(profile, config.budget_bands, request.in_stock_only)
        outcome = CandidateFilterPipeline(constraints).run(items)
        stats.update({f"after_{stage}": remaining for stage, remaining in outcome.remaining.items()})
        stats["candidates"] = len(outcome.items)
        if outcome.is_empty:
            log.info(f"Every candidate was filtered out (emptied by {outcome.emptied_by})")
            return self._finish(RecommendationResult.no_matches(EmptyReason.FILTERED_OUT, stats=stats))

        candidates = outcome.items
        entries: List[RankedEntry] = []
        fallback_reason: Optional[str] = None

        if not config.ranking_enabled:
            fallback_reason = FALLBACK_DISABLED
        else:
            remaining = max(deadline - loop.time(), 0.0)
            try:
                ranking = await asyncio.wait_for(
                    self.ranking_client.rank(profile, candidates, config, count, min_score),
                    timeout=remaining,
                )
            except asyncio.TimeoutError:
                log.warning(f"Ranking did not finish within {timeout:.1f}s, using fallback")
                fallback_reason = FALLBACK_TIMEOUT
            except RateLimitExceededError as e:
                log.warning(f"Ranking quota exhausted, using fallback: {e}")
                fallback_reason = FALLBACK_RATE_LIMITED
            except RankingParseError as e:
                log.warning(f"Ranking reply unusable, using fallback: {e}")
                fallback_reason = FALLBACK_PARSE_ERROR
            except NotConfiguredError:
                raise
            except Exception as e:
                log.error(f"Ranking failed, using fallback: {type(e).__name__}: {e}")
                fallback_reason = FALLBACK_SERVICE_ERROR
            else:
                entries = ranking.entries
                stats["ranked"] = len(entries)
                stats["retries"] = ranking.retries
                if not entries:
                    log.info("Ranking returned no usable entries, using fallback")
                    fallback_reason = FALLBACK_NO_ENTRIES

        source = RecommendationSource.GENERATIVE
        if fallback_reason is not None:
            source = RecommendationSource.FALLBACK
            recommendation_fallbacks_total.labels(reason=fallback_reason).inc()
            entries = fallback.rank(candidates, profile.body_shape, min_score)

        recommendations = merge(entries, candidates, min_score, count, profile.body_shape)
        stats["returned"] = len(recommendations)
        log = log.bind(source=source.value, fallback_reason=fallback_reason)

        if not recommendations:
            log.info(f"Nothing scored at or above {min_score} ({source.value})")
            return self._finish(
                RecommendationResult.no_matches(
                    EmptyReason.BELOW_THRESHOLD,
                    source=source,
                    stats=stats,
                    fallback_reason=fallback_reason,
                )
            )

        log.info(f"Returning {len(recommendations)} recommendations ({source.value})")
        return self._finish(
            RecommendationResult(
                status=RecommendationStatus.OK,
                recommendations=recommendations,
                source=source,
                fallback_reason=fallback_reason,
                stats=stats,
            )
        )

    @staticmethod
    def _finish(result: RecommendationResult) -> RecommendationResult:
        source = result.source.value if result.source else "none"
        recommendation_requests_total.labels(source=source, status=result.status.value).inc()
        return result


# Global engine instance
recommendation_engine = RecommendationEngine()
