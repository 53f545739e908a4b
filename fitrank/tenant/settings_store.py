"""Per-tenant settings resolution.

Every value a request needs is resolved here into one fully populated
``ResolvedSettings``. Tenant rows only store overrides; a NULL column falls
back to the process-wide value in ``fitrank.config.settings``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitrank.ai.prompts import DEFAULT_RECOMMENDATION_PROMPT, DEFAULT_SYSTEM_PROMPT
from fitrank.catalog.cache_store import refresh_priority_scores
from fitrank.config import settings
from fitrank.db.models import PrioritySettings, TenantSettings
from fitrank.recommend.types import BudgetBands, PriorityWeights

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    enabled: bool
    requests_per_minute: int
    requests_per_day: int


@dataclass
class RetryPolicy:
    max_retries: int
    initial_delay_seconds: float
    max_delay_seconds: float
    jitter_ratio: float


@dataclass
class ResolvedSettings:
    """Fully populated settings for one tenant."""

    tenant: str
    ranking_enabled: bool
    api_key: str
    model: str
    temperature: float
    max_tokens: int
    system_prompt: str
    recommendation_prompt: str
    rate_limit: RateLimitConfig
    retry: RetryPolicy
    request_timeout_seconds: float
    budget_bands: BudgetBands
    priority_weights: PriorityWeights
    number_of_suggestions: int
    minimum_match_score: int
    max_products_to_scan: int

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)


def _pick(override: Any, default: Any) -> Any:
    return default if override is None else override


def default_priority_weights() -> PriorityWeights:
    return PriorityWeights(
        strategy=settings.priority_strategy,
        new_arrival_boost=settings.priority_new_arrival_boost,
        overstock_boost=settings.priority_overstock_boost,
        slow_mover_boost=settings.priority_slow_mover_boost,
        high_margin_boost=settings.priority_high_margin_boost,
        on_sale_boost=settings.priority_on_sale_boost,
        new_arrival_days=settings.priority_new_arrival_days,
        overstock_threshold=settings.priority_overstock_threshold,
        slow_mover_threshold=settings.priority_slow_mover_threshold,
    )


def _weights_from_row(row: Optional[PrioritySettings]) -> PriorityWeights:
    weights = default_priority_weights()
    if row is None:
        return weights
    return PriorityWeights(
        strategy=_pick(row.strategy, weights.strategy),
        new_arrival_boost=_pick(row.new_arrival_boost, weights.new_arrival_boost),
        overstock_boost=_pick(row.overstock_boost, weights.overstock_boost),
        slow_mover_boost=_pick(row.slow_mover_boost, weights.slow_mover_boost),
        high_margin_boost=_pick(row.high_margin_boost, weights.high_margin_boost),
        on_sale_boost=_pick(row.on_sale_boost, weights.on_sale_boost),
        new_arrival_days=_pick(row.new_arrival_days, weights.new_arrival_days),
        overstock_threshold=_pick(row.overstock_threshold, weights.overstock_threshold),
        slow_mover_threshold=_pick(row.slow_mover_threshold, weights.slow_mover_threshold),
    )


def _bands_from_row(row: Optional[TenantSettings]) -> BudgetBands:
    return BudgetBands(
        low_max=_pick(row.budget_low_max if row else None, settings.budget_low_max),
        medium_max=_pick(row.budget_medium_max if row else None, settings.budget_medium_max),
        high_max=_pick(row.budget_high_max if row else None, settings.budget_high_max),
    )


async def _tenant_row(db: AsyncSession, tenant: str) -> Optional[TenantSettings]:
    result = await db.execute(select(TenantSettings).where(TenantSettings.tenant == tenant))
    return result.scalar_one_or_none()


async def _priority_row(db: AsyncSession, tenant: str) -> Optional[PrioritySettings]:
    result = await db.execute(select(PrioritySettings).where(PrioritySettings.tenant == tenant))
    return result.scalar_one_or_none()


async def resolve_settings(db: AsyncSession, tenant: str) -> ResolvedSettings:
    """
    Resolve the complete settings record for a tenant.

    Args:
        db: Database session
        tenant: Tenant identifier

    Returns:
        ResolvedSettings with no unset fields
    """
    row = await _tenant_row(db, tenant)
    priority_row = await _priority_row(db, tenant)

    def override(name: str) -> Any:
        return getattr(row, name) if row is not None else None

    return ResolvedSettings(
        tenant=tenant,
        ranking_enabled=_pick(override("ranking_enabled"), settings.ranking_enabled),
        api_key=override("api_key") or settings.openai_api_key,
        model=override("model") or settings.llm_model,
        temperature=_pick(override("temperature"), settings.llm_temperature),
        max_tokens=_pick(override("max_tokens"), settings.llm_max_tokens),
        system_prompt=override("system_prompt") or DEFAULT_SYSTEM_PROMPT,
        recommendation_prompt=override("recommendation_prompt") or DEFAULT_RECOMMENDATION_PROMPT,
        rate_limit=RateLimitConfig(
            enabled=_pick(override("rate_limit_enabled"), settings.rate_limit_enabled),
            requests_per_minute=_pick(
                override("requests_per_minute"), settings.rate_limit_requests_per_minute
            ),
            requests_per_day=_pick(override("requests_per_day"), settings.rate_limit_requests_per_day),
        ),
        retry=RetryPolicy(
            max_retries=settings.ranking_max_retries,
            initial_delay_seconds=settings.ranking_initial_delay_seconds,
            max_delay_seconds=settings.ranking_max_delay_seconds,
            jitter_ratio=settings.ranking_jitter_ratio,
        ),
        request_timeout_seconds=settings.request_timeout_seconds,
        budget_bands=_bands_from_row(row),
        priority_weights=_weights_from_row(priority_row),
        number_of_suggestions=_pick(override("number_of_suggestions"), settings.number_of_suggestions),
        minimum_match_score=_pick(override("minimum_match_score"), settings.minimum_match_score),
        max_products_to_scan=_pick(override("max_products_to_scan"), settings.max_products_to_scan),
    )


async def budget_bands_for(db: AsyncSession, tenant: str) -> BudgetBands:
    """Budget bands for a tenant, defaults when it has none saved."""
    return _bands_from_row(await _tenant_row(db, tenant))


async def get_priority_weights(db: AsyncSession, tenant: str) -> PriorityWeights:
    return _weights_from_row(await _priority_row(db, tenant))


async def save_tenant_settings(db: AsyncSession, tenant: str, values: Dict[str, Any]) -> TenantSettings:
    """
    Store tenant overrides.

    Unknown keys are ignored. A value of None clears the override so the
    process-wide default applies again.
    """
    row = await _tenant_row(db, tenant)
    if row is None:
        row = TenantSettings(tenant=tenant)
        db.add(row)

    columns = TenantSettings.__table__.columns.keys()
    for key, value in values.items():
        if key in ("id", "tenant", "created_at", "updated_at") or key not in columns:
            logger.warning(f"Ignoring unknown tenant setting {key!r} for {tenant}")
            continue
        setattr(row, key, value)

    await db.commit()
    await db.refresh(row)
    logger.info(f"Saved settings for {tenant}")
    return row


async def save_priority_weights(
    db: AsyncSession,
    tenant: str,
    weights: PriorityWeights,
) -> int:
    """
    Store priority weights and recompute the tenant's cached scores.

    Returns:
        Number of cached items whose score was recomputed
    """
    row = await _priority_row(db, tenant)
    if row is None:
        row = PrioritySettings(tenant=tenant)
        db.add(row)

    for key, value in weights.to_dict().items():
        setattr(row, key, value)
    await db.commit()

    logger.info(f"Saved priority weights for {tenant} (strategy: {weights.strategy})")
    return await refresh_priority_scores(db, tenant, weights)
