"""Tests for priority score calculation."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from fitrank.catalog.priority import (
    compute_score,
    days_since,
    inputs_from_record,
    score_breakdown,
)
from fitrank.recommend.types import PriorityInputs

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def _only(weights, factor):
    """Weights with every boost zeroed except ``factor``."""
    zeroed = replace(
        weights,
        new_arrival_boost=0.0,
        overstock_boost=0.0,
        slow_mover_boost=0.0,
        high_margin_boost=0.0,
        on_sale_boost=0.0,
    )
    return replace(zeroed, **{f"{factor}_boost": 50.0})


class TestComputeScore:
    """Factor behavior of compute_score."""

    def test_all_weights_zero_scores_zero(self, weights):
        zero = replace(
            weights,
            new_arrival_boost=0.0,
            overstock_boost=0.0,
            slow_mover_boost=0.0,
            high_margin_boost=0.0,
            on_sale_boost=0.0,
        )
        inputs = PriorityInputs(
            price=20.0,
            compare_at_price=40.0,
            inventory_quantity=500,
            published_at=NOW,
            total_sold=0,
            profit_margin=80.0,
        )
        assert compute_score(inputs, zero, NOW) == 0.0

    def test_missing_inputs_skip_factors(self, weights):
        inputs = PriorityInputs(price=20.0)
        assert compute_score(inputs, weights, NOW) == 0.0

    def test_new_arrival_linear_decay(self, weights):
        w = _only(weights, "new_arrival")
        published = NOW - timedelta(days=15)
        inputs = PriorityInputs(price=10.0, published_at=published)
        assert compute_score(inputs, w, NOW) == pytest.approx(25.0)

    def test_new_arrival_uses_whole_days(self, weights):
        w = _only(weights, "new_arrival")
        inputs = PriorityInputs(price=10.0, published_at=NOW - timedelta(days=3, hours=23))
        assert compute_score(inputs, w, NOW) == pytest.approx(50.0 * (1 - 3 / 30))

    def test_new_arrival_monotonic_and_zero_outside_window(self, weights):
        w = _only(weights, "new_arrival")
        scores = [
            compute_score(PriorityInputs(price=10.0, published_at=NOW - timedelta(days=d)), w, NOW)
            for d in range(0, 45)
        ]
        assert all(a >= b for a, b in zip(scores, scores[1:]))
        assert scores[0] == pytest.approx(50.0)
        assert scores[30] == 0.0
        assert all(s == 0.0 for s in scores[31:])

    def test_future_publish_date_counts_as_today(self, weights):
        w = _only(weights, "new_arrival")
        inputs = PriorityInputs(price=10.0, published_at=NOW + timedelta(days=5))
        assert compute_score(inputs, w, NOW) == pytest.approx(50.0)

    def test_naive_publish_date_treated_as_utc(self):
        naive = datetime(2026, 5, 31, 12, 0)
        assert days_since(naive, NOW) == 1

    def test_overstock_saturates_at_three_times_threshold(self, weights):
        w = _only(weights, "overstock")
        at_3x = compute_score(PriorityInputs(price=10.0, inventory_quantity=30), w, NOW)
        at_10x = compute_score(PriorityInputs(price=10.0, inventory_quantity=100), w, NOW)
        assert at_3x == at_10x == pytest.approx(50.0)

    def test_overstock_needs_more_than_threshold(self, weights):
        w = _only(weights, "overstock")
        assert compute_score(PriorityInputs(price=10.0, inventory_quantity=10), w, NOW) == 0.0
        assert compute_score(PriorityInputs(price=10.0, inventory_quantity=15), w, NOW) == pytest.approx(25.0)

    def test_slow_mover(self, weights):
        w = _only(weights, "slow_mover")
        assert compute_score(PriorityInputs(price=10.0, total_sold=0), w, NOW) == pytest.approx(50.0)
        assert compute_score(PriorityInputs(price=10.0, total_sold=2), w, NOW) == pytest.approx(30.0)
        assert compute_score(PriorityInputs(price=10.0, total_sold=5), w, NOW) == 0.0

    def test_high_margin_clamped(self, weights):
        w = _only(weights, "high_margin")
        assert compute_score(PriorityInputs(price=10.0, profit_margin=40.0), w, NOW) == pytest.approx(20.0)
        assert compute_score(PriorityInputs(price=10.0, profit_margin=250.0), w, NOW) == pytest.approx(50.0)
        assert compute_score(PriorityInputs(price=10.0, profit_margin=-20.0), w, NOW) == 0.0

    def test_on_sale_is_binary(self, weights):
        w = _only(weights, "on_sale")
        assert compute_score(PriorityInputs(price=10.0, compare_at_price=15.0), w, NOW) == 50.0
        assert compute_score(PriorityInputs(price=10.0, compare_at_price=10.0), w, NOW) == 0.0
        assert compute_score(PriorityInputs(price=0.0, compare_at_price=15.0), w, NOW) == 0.0

    def test_degenerate_thresholds_skip_factor(self, weights):
        w = replace(weights, new_arrival_days=0, overstock_threshold=0, slow_mover_threshold=0)
        inputs = PriorityInputs(price=10.0, published_at=NOW, inventory_quantity=99, total_sold=0)
        assert compute_score(inputs, w, NOW) == 0.0

    def test_factors_are_additive(self, weights):
        inputs = PriorityInputs(
            price=10.0,
            compare_at_price=20.0,
            inventory_quantity=30,
            published_at=NOW,
            total_sold=0,
            profit_margin=100.0,
        )
        assert compute_score(inputs, weights, NOW) == pytest.approx(250.0)


def test_score_breakdown_and_record_inputs(make_item, weights):
    item = make_item(price=20.0, compare_at_price=30.0, total_sold=1)
    breakdown = score_breakdown(inputs_from_record(item), weights, NOW)

    assert breakdown["on_sale"] == 50.0
    assert breakdown["slow_mover"] == pytest.approx(40.0)
    assert breakdown["new_arrival"] == 0.0
    assert sum(breakdown.values()) == pytest.approx(
        compute_score(inputs_from_record(item), weights, NOW)
    )
