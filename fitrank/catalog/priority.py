"""Priority score calculation for cached catalog items.

The priority score is a weight-derived scalar stored on each cached record so
the cache can hand back a pre-sorted top-K without touching the ranking
service. It has no intrinsic scale; only the relative order between items of
the same tenant means anything.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Dict, Optional

from fitrank.recommend.types import CatalogItemRecord, PriorityInputs, PriorityWeights

logger = logging.getLogger(__name__)

# Strategy labels offered by the admin flow. The label is stored with the
# weights; it does not change how the score is computed.
STRATEGIES: Dict[str, str] = {
    "balanced": "All boost factors work together equally.",
    "new_arrivals": "Heavily prioritize recently published items.",
    "move_inventory": "Focus on items with high stock levels and low sales.",
    "bestsellers": "Promote items with a strong sales history.",
    "high_margin": "Prioritize items with the highest profit margins.",
    "seasonal": "Boost items currently on sale or discounted.",
    "custom": "Hand-tuned weights.",
}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_since(published_at: datetime, now: datetime) -> int:
    """Whole days elapsed since publication. Future dates count as zero."""
    elapsed = _as_utc(now) - _as_utc(published_at)
    days = math.floor(elapsed.total_seconds() / 86400)
    return max(days, 0)


def new_arrival_factor(published_at: Optional[datetime], window_days: int, now: datetime) -> float:
    if published_at is None or window_days <= 0:
        return 0.0
    days = days_since(published_at, now)
    if days > window_days:
        return 0.0
    return 1.0 - days / window_days


def overstock_factor(quantity: Optional[int], threshold: int) -> float:
    if quantity is None or threshold <= 0:
        return 0.0
    if quantity <= threshold:
        return 0.0
    return min(quantity / (3 * threshold), 1.0)


def slow_mover_factor(total_sold: Optional[int], threshold: int) -> float:
    if total_sold is None or threshold <= 0:
        return 0.0
    if total_sold >= threshold:
        return 0.0
    return 1.0 - max(total_sold, 0) / threshold


def high_margin_factor(margin: Optional[float]) -> float:
    if margin is None:
        return 0.0
    return min(max(margin / 100.0, 0.0), 1.0)


def on_sale_factor(price: float, compare_at_price: Optional[float]) -> float:
    if compare_at_price is None:
        return 0.0
    return 1.0 if compare_at_price > price > 0 else 0.0


def score_breakdown(
    inputs: PriorityInputs,
    weights: PriorityWeights,
    now: Optional[datetime] = None,
) -> Dict[str, float]:
    """
    Compute each factor's weighted contribution.

    A factor with weight 0 contributes nothing, as does a factor whose input
    is unknown.

    Args:
        inputs: Business attributes of one item
        weights: Tenant priority weights and thresholds
        now: Reference time (defaults to current UTC time)

    Returns:
        Mapping of factor name to contribution
    """
    now = now or datetime.now(timezone.utc)
    contributions = {
        "new_arrival": 0.0,
        "overstock": 0.0,
        "slow_mover": 0.0,
        "high_margin": 0.0,
        "on_sale": 0.0,
    }

    if weights.new_arrival_boost > 0:
        contributions["new_arrival"] = weights.new_arrival_boost * new_arrival_factor(
            inputs.published_at, weights.new_arrival_days, now
        )
    if weights.overstock_boost > 0:
        contributions["overstock"] = weights.overstock_boost * overstock_factor(
            inputs.inventory_quantity, weights.overstock_threshold
        )
    if weights.slow_mover_boost > 0:
        contributions["slow_mover"] = weights.slow_mover_boost * slow_mover_factor(
            inputs.total_sold, weights.slow_mover_threshold
        )
    if weights.high_margin_boost > 0:
        contributions["high_margin"] = weights.high_margin_boost * high_margin_factor(
            inputs.profit_margin
        )
    if weights.on_sale_boost > 0:
        contributions["on_sale"] = weights.on_sale_boost * on_sale_factor(
            inputs.price, inputs.compare_at_price
        )

    return contributions


def compute_score(
    inputs: PriorityInputs,
    weights: PriorityWeights,
    now: Optional[datetime] = None,
) -> float:
    """Sum of all active factor contributions."""
    return sum(score_breakdown(inputs, weights, now).values())


def inputs_from_record(record: CatalogItemRecord) -> PriorityInputs:
    """Project the priority inputs out of a cached record."""
    return PriorityInputs(
        price=record.price,
        compare_at_price=record.compare_at_price,
        inventory_quantity=record.inventory_quantity,
        published_at=record.published_at,
        total_sold=record.total_sold,
        profit_margin=record.profit_margin,
    )
