"""Tests for per-tenant settings resolution."""

from dataclasses import asdict, replace
from datetime import datetime, timezone

import pytest

from fitrank.ai.prompts import DEFAULT_RECOMMENDATION_PROMPT, DEFAULT_SYSTEM_PROMPT
from fitrank.catalog import cache_store
from fitrank.config import settings
from fitrank.tenant.settings_store import (
    budget_bands_for,
    get_priority_weights,
    resolve_settings,
    save_priority_weights,
    save_tenant_settings,
)

TENANT = "shop.example.com"


class TestResolveSettings:

    async def test_defaults_are_fully_populated(self, db_session, api_key):
        config = await resolve_settings(db_session, TENANT)

        for name, value in asdict(config).items():
            assert value is not None, name
        assert config.api_key == "sk-test"
        assert config.model == settings.llm_model
        assert config.system_prompt == DEFAULT_SYSTEM_PROMPT
        assert config.recommendation_prompt == DEFAULT_RECOMMENDATION_PROMPT
        assert config.number_of_suggestions == 30
        assert config.minimum_match_score == 30
        assert config.max_products_to_scan == 1000
        assert config.request_timeout_seconds == 45.0
        assert config.retry.max_retries == 3
        assert config.retry.initial_delay_seconds == 1.0
        assert config.retry.max_delay_seconds == 10.0
        assert config.retry.jitter_ratio == pytest.approx(0.3)
        assert config.rate_limit.requests_per_minute == 15
        assert config.rate_limit.requests_per_day == 1500
        assert (config.budget_bands.low_max, config.budget_bands.medium_max, config.budget_bands.high_max) == (
            30.0,
            80.0,
            200.0,
        )
        assert config.priority_weights.strategy == "balanced"
        assert config.priority_weights.new_arrival_days == 30

    async def test_tenant_overrides(self, db_session, api_key):
        await save_tenant_settings(
            db_session,
            TENANT,
            {
                "api_key": "sk-tenant",
                "model": "gpt-4o",
                "minimum_match_score": 60,
                "requests_per_minute": 2,
                "budget_low_max": 25.0,
                "recommendation_prompt": "Only suggest outerwear.",
            },
        )

        config = await resolve_settings(db_session, TENANT)

        assert config.api_key == "sk-tenant"
        assert config.model == "gpt-4o"
        assert config.minimum_match_score == 60
        assert config.rate_limit.requests_per_minute == 2
        assert config.rate_limit.requests_per_day == 1500
        assert config.budget_bands.low_max == 25.0
        assert config.budget_bands.medium_max == 80.0
        assert config.recommendation_prompt == "Only suggest outerwear."
        assert config.system_prompt == DEFAULT_SYSTEM_PROMPT

    async def test_false_override_is_kept(self, db_session, api_key):
        await save_tenant_settings(db_session, TENANT, {"ranking_enabled": False, "rate_limit_enabled": False})

        config = await resolve_settings(db_session, TENANT)

        assert config.ranking_enabled is False
        assert config.rate_limit.enabled is False

    async def test_none_clears_override(self, db_session, api_key):
        await save_tenant_settings(db_session, TENANT, {"model": "gpt-4o"})
        await save_tenant_settings(db_session, TENANT, {"model": None})

        config = await resolve_settings(db_session, TENANT)

        assert config.model == settings.llm_model

    async def test_unknown_keys_ignored(self, db_session, api_key):
        await save_tenant_settings(db_session, TENANT, {"colour": "red", "tenant": "other", "model": "gpt-4o"})

        config = await resolve_settings(db_session, TENANT)

        assert config.tenant == TENANT
        assert config.model == "gpt-4o"

    async def test_missing_credential_is_visible(self, db_session, no_api_key):
        config = await resolve_settings(db_session, TENANT)
        assert config.has_credential is False


class TestBudgetBands:

    async def test_defaults(self, db_session):
        bands = await budget_bands_for(db_session, "unknown-shop")
        assert (bands.low_max, bands.medium_max, bands.high_max) == (30.0, 80.0, 200.0)

    async def test_tenant_bands(self, db_session):
        await save_tenant_settings(db_session, TENANT, {"budget_medium_max": 100.0})
        bands = await budget_bands_for(db_session, TENANT)
        assert bands.band_for("Medium") == (30.0, 100.0)
        assert bands.band_for("luxury") == (200.0, float("inf"))
        assert bands.band_for("platinum") is None


class TestPriorityWeights:

    async def test_save_refreshes_cached_scores(self, db_session, make_item, weights):
        now = datetime.now(timezone.utc)
        on_sale = make_item(price=49.0, compare_at_price=80.0)
        margin = make_item(profit_margin=80.0)
        for item in (on_sale, margin):
            await cache_store.upsert(db_session, TENANT, item.item_id, item, weights=weights, now=now)

        high_margin = replace(weights, strategy="high_margin", on_sale_boost=0.0, high_margin_boost=100.0)
        refreshed = await save_priority_weights(db_session, TENANT, high_margin)

        assert refreshed == 2
        stored = await get_priority_weights(db_session, TENANT)
        assert stored == high_margin
        records = await cache_store.query(db_session, TENANT)
        assert [r.item_id for r in records] == [margin.item_id, on_sale.item_id]
        assert records[0].priority_score == pytest.approx(80.0)
        assert records[1].priority_score == 0.0

    async def test_defaults_without_row(self, db_session):
        stored = await get_priority_weights(db_session, TENANT)
        assert stored.strategy == settings.priority_strategy
        assert stored.on_sale_boost == settings.priority_on_sale_boost
