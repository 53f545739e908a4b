"""Tests for the generative ranking client."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from fitrank.ai.ranking_client import (
    GenerativeRankingClient,
    build_candidates,
    validate_entries,
)
from fitrank.ai.llm_service import LLMService
from fitrank.ai.rate_limiter import RankingRateLimiter
from fitrank.ai.response_repair import RepairStage
from fitrank.config import settings
from fitrank.errors import RankingParseError, RateLimitExceededError
from fitrank.recommend.types import (
    BudgetBands,
    ColorCharacteristics,
    Measurements,
    PriorityWeights,
    ShopperProfile,
    ValuesPreferences,
)
from fitrank.tenant.settings_store import RateLimitConfig, ResolvedSettings, RetryPolicy


def make_config(**overrides) -> ResolvedSettings:
    values = dict(
        tenant="shop.example.com",
        ranking_enabled=True,
        api_key="sk-tenant",
        model="gpt-4o-mini",
        temperature=0.7,
        max_tokens=4096,
        system_prompt="You are a stylist.",
        recommendation_prompt="Pick flattering items.",
        rate_limit=RateLimitConfig(enabled=True, requests_per_minute=15, requests_per_day=1500),
        retry=RetryPolicy(max_retries=3, initial_delay_seconds=1.0, max_delay_seconds=10.0, jitter_ratio=0.3),
        request_timeout_seconds=45.0,
        budget_bands=BudgetBands(low_max=30.0, medium_max=80.0, high_max=200.0),
        priority_weights=PriorityWeights(
            new_arrival_boost=50.0,
            overstock_boost=50.0,
            slow_mover_boost=50.0,
            high_margin_boost=50.0,
            on_sale_boost=50.0,
            new_arrival_days=30,
            overstock_threshold=10,
            slow_mover_threshold=5,
        ),
        number_of_suggestions=30,
        minimum_match_score=30,
        max_products_to_scan=1000,
    )
    values.update(overrides)
    return ResolvedSettings(**values)


def reply(*entries) -> str:
    return json.dumps({"recommendations": list(entries)})


def completion(content: str):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=800, completion_tokens=200),
    )


PROFILE = ShopperProfile(
    body_shape="Hourglass",
    measurements=Measurements(gender="woman", bust=92.5, waist=70.5, hips=96.5),
    color_season="Autumn",
    color_characteristics=ColorCharacteristics(undertone="warm", undertone_context="golden veins"),
    values=ValuesPreferences(sustainability=True, budget_tier="medium", styles=["classic"]),
)


class TestCandidates:

    def test_candidate_view(self, make_item):
        items = [
            make_item(title="Wrap Dress", description="x" * 500, tags=["wrap", "midi"],
                      available_sizes=["S", "M"], silhouette="wrap", color_seasons=["Autumn"]),
            make_item(title="Tee"),
        ]
        candidates = build_candidates(items)

        assert [c.index for c in candidates] == [0, 1]
        assert len(candidates[0].description) == 300
        payload = candidates[0].to_payload()
        assert payload["tags"] == "wrap, midi"
        assert payload["sizes"] == ["S", "M"]
        assert payload["visualAnalysis"] == {"colorSeasons": ["Autumn"], "silhouette": "wrap"}
        assert "visualAnalysis" not in candidates[1].to_payload()


class TestValidateEntries:

    def test_drops_and_counts(self):
        raw = [
            {"index": 0, "score": 90, "reasoning": "r", "sizeAdvice": "s", "stylingTip": "t"},
            {"index": 5, "score": 90},
            {"index": -1, "score": 90},
            {"index": "1", "score": 90},
            {"index": True, "score": 90},
            {"index": 1, "score": -3},
            {"index": 1, "score": "high"},
            {"index": 1},
            {"index": 2, "score": 20},
            {"index": 2.0, "score": 140},
            "not an entry",
        ]
        entries, dropped = validate_entries(raw, candidate_count=3, min_score=50)

        assert [(e.index, e.score) for e in entries] == [(0, 90.0), (2, 100.0)]
        assert entries[0].rationale == "r"
        assert entries[0].size_advice == "s"
        assert entries[0].styling_tip == "t"
        assert dropped == {
            "malformed": 1,
            "out_of_range": 4,
            "invalid_score": 3,
            "below_threshold": 1,
        }

    def test_duplicates_are_kept(self):
        raw = [{"index": 0, "score": 90}, {"index": 0, "score": 95}]
        entries, _ = validate_entries(raw, candidate_count=1, min_score=50)
        assert len(entries) == 2


class TestGenerativeRankingClient:

    def setup_method(self):
        self.llm = MagicMock()
        self.llm.call_llm = AsyncMock()
        self.llm.store_cached = AsyncMock()
        self.sleep = AsyncMock()
        self.client = GenerativeRankingClient(
            llm=self.llm,
            rate_limiter=RankingRateLimiter(),
            sleep=self.sleep,
        )

    async def test_rank_success(self, make_item):
        items = [make_item(title="Wrap Dress"), make_item(title="Belted Coat"), make_item(title="Tee")]
        self.llm.call_llm.return_value = reply(
            {"index": 1, "score": 88, "reasoning": "Belt defines the waist"},
            {"index": 0, "score": 92},
        )

        outcome = await self.client.rank(PROFILE, items, make_config(), count=2, min_score=50)

        assert [e.index for e in outcome.entries] == [1, 0]
        assert outcome.repair_stage == RepairStage.STRICT
        assert outcome.retries == 0
        assert outcome.raw_count == 2

        kwargs = self.llm.call_llm.await_args.kwargs
        assert kwargs["api_key"] == "sk-tenant"
        assert kwargs["tenant"] == "shop.example.com"
        assert kwargs["store_in_cache"] is False
        self.llm.store_cached.assert_awaited_once_with(
            kwargs["prompt"], "You are a stylist.", "gpt-4o-mini", self.llm.call_llm.return_value
        )
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["system_prompt"] == "You are a stylist."
        prompt = kwargs["prompt"]
        assert prompt.startswith("Pick flattering items.")
        assert "Body Shape: Hourglass" in prompt
        assert "- Waist: 70.5cm" in prompt
        assert "- Undertone: warm (golden veins)" in prompt
        assert "Color Guidance:" in prompt
        assert "Audience Guidance:" in prompt
        assert "top 2 DIFFERENT products" in prompt
        assert "score >= 50" in prompt
        assert '"recommendations"' in prompt

    async def test_transient_failures_are_retried(self, make_item):
        items = [make_item()]
        self.llm.call_llm.side_effect = [
            RuntimeError("Server overloaded"),
            RuntimeError("rate limit hit"),
            reply({"index": 0, "score": 75}),
        ]

        outcome = await self.client.rank(PROFILE, items, make_config(), count=1, min_score=50)

        assert outcome.retries == 2
        assert self.llm.call_llm.await_count == 3
        assert self.sleep.await_count == 2

    async def test_fatal_failure_is_not_retried(self, make_item):
        self.llm.call_llm.side_effect = ValueError("bad request")

        with pytest.raises(ValueError):
            await self.client.rank(PROFILE, [make_item()], make_config(), count=1, min_score=50)
        assert self.llm.call_llm.await_count == 1

    async def test_parse_failure_is_not_retried(self, make_item):
        self.llm.call_llm.return_value = "Sorry, I can't help with that."

        with pytest.raises(RankingParseError):
            await self.client.rank(PROFILE, [make_item()], make_config(), count=1, min_score=50)
        assert self.llm.call_llm.await_count == 1
        self.llm.store_cached.assert_not_awaited()

    async def test_reply_without_usable_entries_is_not_cached(self, make_item):
        self.llm.call_llm.return_value = reply({"index": 0, "score": 10}, {"index": 4, "score": 90})

        outcome = await self.client.rank(PROFILE, [make_item()], make_config(), count=1, min_score=50)

        assert outcome.is_empty
        self.llm.store_cached.assert_not_awaited()

    async def test_repaired_reply_and_drop_counts(self, make_item):
        items = [make_item(), make_item()]
        self.llm.call_llm.return_value = (
            '```json\n{"recommendations": [{"index": 0, "score": 80}, {"index": 9, "score": 99},],}\n```'
        )

        outcome = await self.client.rank(PROFILE, items, make_config(), count=2, min_score=50)

        assert outcome.repair_stage == RepairStage.TRAILING_COMMAS
        assert [e.index for e in outcome.entries] == [0]
        assert outcome.dropped_out_of_range == 1

    async def test_quota_exhaustion_raises_before_calling(self, make_item):
        config = make_config(
            rate_limit=RateLimitConfig(enabled=True, requests_per_minute=1, requests_per_day=10)
        )
        self.llm.call_llm.return_value = reply({"index": 0, "score": 80})

        await self.client.rank(PROFILE, [make_item()], config, count=1, min_score=50)
        with pytest.raises(RateLimitExceededError):
            await self.client.rank(PROFILE, [make_item()], config, count=1, min_score=50)
        assert self.llm.call_llm.await_count == 1


class FakeRedis:
    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value


class TestReplyCaching:

    def setup_method(self):
        self.redis = FakeRedis()
        self.openai = MagicMock()
        self.openai.chat.completions.create = AsyncMock()
        self.service = LLMService()
        self.service._get_redis = AsyncMock(return_value=self.redis)
        self.service._get_client = MagicMock(return_value=self.openai)
        self.client = GenerativeRankingClient(llm=self.service, rate_limiter=RankingRateLimiter(), sleep=AsyncMock())

    async def test_unusable_reply_is_requested_again(self, make_item, monkeypatch):
        monkeypatch.setattr(settings, "llm_cache_enabled", True)
        self.openai.chat.completions.create.side_effect = [
            completion("Sorry, I cannot help with that."),
            completion(reply({"index": 0, "score": 85})),
        ]
        items = [make_item(title="Wrap Dress")]

        with pytest.raises(RankingParseError):
            await self.client.rank(PROFILE, items, make_config(), count=1, min_score=50)
        assert self.redis.store == {}

        outcome = await self.client.rank(PROFILE, items, make_config(), count=1, min_score=50)

        assert [e.index for e in outcome.entries] == [0]
        assert self.openai.chat.completions.create.await_count == 2
        assert len(self.redis.store) == 1

    async def test_usable_reply_is_replayed(self, make_item, monkeypatch):
        monkeypatch.setattr(settings, "llm_cache_enabled", True)
        self.openai.chat.completions.create.return_value = completion(reply({"index": 0, "score": 85}))
        items = [make_item(title="Wrap Dress")]

        await self.client.rank(PROFILE, items, make_config(), count=1, min_score=50)
        outcome = await self.client.rank(PROFILE, items, make_config(), count=1, min_score=50)

        assert outcome.entries[0].score == 85.0
        assert self.openai.chat.completions.create.await_count == 1
        assert self.service.get_stats()["cache_hits"] == 1
