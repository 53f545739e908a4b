"""Hard-constraint filtering of cached catalog items.

Stages run in a fixed order and each one only removes items, so the
priority order produced by the cache is preserved.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from fitrank.catalog.text import item_text
from fitrank.recommend.style_guide import AVOID_KEYWORDS, canonical_body_shape, canonical_season
from fitrank.recommend.types import BudgetBands, CatalogItemRecord, ShopperProfile

logger = logging.getLogger(__name__)

STAGES = ("price", "stock", "season", "budget", "audience", "body_shape")

# Audience keyword lists. This is a heuristic: an item is only dropped when it
# carries an opposite-audience keyword and nothing that marks it as suitable.
_AUDIENCE_KEYWORDS: Dict[str, List[str]] = {
    "man": ["men", "men's", "mens", "man", "male", "menswear", "for him", "gentlemen"],
    "woman": [
        "women", "women's", "womens", "woman", "female", "womenswear",
        "ladies", "lady", "for her",
    ],
}
_NEUTRAL_KEYWORDS = ["unisex", "gender neutral", "gender-neutral", "genderless", "all genders"]


def _compile(keywords: List[str]) -> List[re.Pattern]:
    return [re.compile(r"\b" + re.escape(kw) + r"(?!\w)", re.IGNORECASE) for kw in keywords]


_AUDIENCE_PATTERNS = {audience: _compile(kws) for audience, kws in _AUDIENCE_KEYWORDS.items()}
_NEUTRAL_PATTERNS = _compile(_NEUTRAL_KEYWORDS)
_OPPOSITE = {"man": "woman", "woman": "man"}


def _matches_any(patterns: List[re.Pattern], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def audience_allows(item: CatalogItemRecord, audience: str) -> bool:
    """False only when the item clearly targets the opposite audience."""
    opposite = _OPPOSITE.get(audience)
    if opposite is None:
        return True
    text = item_text(item, include_visual=False)
    if not _matches_any(_AUDIENCE_PATTERNS[opposite], text):
        return True
    if _matches_any(_AUDIENCE_PATTERNS[audience], text) or _matches_any(_NEUTRAL_PATTERNS, text):
        return True
    return False


@dataclass
class FilterConstraints:
    """Hard constraints for one request."""

    in_stock_only: bool = True
    season: Optional[str] = None
    budget_tier: Optional[str] = None
    budget_bands: Optional[BudgetBands] = None
    audience: Optional[str] = None
    body_shape: Optional[str] = None

    @classmethod
    def from_profile(
        cls,
        profile: ShopperProfile,
        budget_bands: BudgetBands,
        in_stock_only: bool = True,
    ) -> "FilterConstraints":
        return cls(
            in_stock_only=in_stock_only,
            season=profile.color_season,
            budget_tier=profile.values.budget_tier if profile.values else None,
            budget_bands=budget_bands,
            audience=profile.gender,
            body_shape=profile.body_shape,
        )


@dataclass
class FilterOutcome:
    """Surviving items plus the count remaining after each stage."""

    items: List[CatalogItemRecord]
    input_count: int
    remaining: Dict[str, int] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    emptied_by: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.items


class CandidateFilterPipeline:
    """
    Narrows cached items by hard constraints.

    Stages, in order:
    - price: drop non-positive prices
    - stock: drop out-of-stock items when in-stock only
    - season: keep items tagged with the requested color season
    - budget: keep items inside the tier's half-open price band
    - audience: drop items clearly aimed at the opposite audience
    - body_shape: drop items carrying a style the body shape should avoid
    """

    def __init__(self, constraints: FilterConstraints):
        self.constraints = constraints

    def _price(self, items: List[CatalogItemRecord]) -> List[CatalogItemRecord]:
        return [item for item in items if item.price > 0]

    def _stock(self, items: List[CatalogItemRecord]) -> Optional[List[CatalogItemRecord]]:
        if not self.constraints.in_stock_only:
            return None
        return [item for item in items if item.in_stock]

    def _season(self, items: List[CatalogItemRecord]) -> Optional[List[CatalogItemRecord]]:
        season = canonical_season(self.constraints.season)
        if not season:
            return None
        return [
            item for item in items
            if any(canonical_season(tag) == season for tag in item.color_seasons)
        ]

    def _budget(self, items: List[CatalogItemRecord]) -> Optional[List[CatalogItemRecord]]:
        tier = self.constraints.budget_tier
        if not tier:
            return None
        bands = self.constraints.budget_bands
        band = bands.band_for(tier) if bands is not None else None
        if band is None:
            logger.warning(f"Unknown budget tier {tier!r}, skipping budget filter")
            return None
        lower, upper = band
        return [item for item in items if lower <= item.price < upper]

    def _audience(self, items: List[CatalogItemRecord]) -> Optional[List[CatalogItemRecord]]:
        audience = (self.constraints.audience or "").strip().lower()
        if audience not in _OPPOSITE:
            return None
        return [item for item in items if audience_allows(item, audience)]

    def _body_shape(self, items: List[CatalogItemRecord]) -> Optional[List[CatalogItemRecord]]:
        shape = canonical_body_shape(self.constraints.body_shape)
        avoid = [kw.lower() for kw in AVOID_KEYWORDS.get(shape, [])]
        if not avoid:
            return None
        kept = []
        for item in items:
            text = item_text(item)
            if any(kw in text for kw in avoid):
                continue
            kept.append(item)
        return kept

    def run(self, items: List[CatalogItemRecord]) -> FilterOutcome:
        """
        Apply every stage in order.

        A stage that does not apply (no season requested, unknown budget tier,
        non-binary audience hint, ...) is recorded in ``skipped`` and leaves
        the list untouched. If the season stage removes everything the
        pipeline stops there and reports ``emptied_by="season"``.

        Args:
            items: Cached items, already ordered by priority

        Returns:
            FilterOutcome with the surviving items in input order
        """
        outcome = FilterOutcome(items=list(items), input_count=len(items))
        stages = {
            "price": self._price,
            "stock": self._stock,
            "season": self._season,
            "budget": self._budget,
            "audience": self._audience,
            "body_shape": self._body_shape,
        }

        current = outcome.items
        for name in STAGES:
            narrowed = stages[name](current)
            if narrowed is None:
                outcome.skipped.append(name)
            else:
                removed = len(current) - len(narrowed)
                if removed:
                    logger.debug(f"Filter stage {name}: {len(current)} -> {len(narrowed)}")
                current = narrowed
            outcome.remaining[name] = len(current)

            if not current and outcome.emptied_by is None and outcome.input_count:
                outcome.emptied_by = name
                if name == "season":
                    logger.info("Season filter removed every candidate")
                    break

        outcome.items = current
        if outcome.input_count:
            logger.info(
                f"Filtered candidates: {outcome.input_count} -> {len(current)} "
                f"(emptied by: {outcome.emptied_by or '-'})"
            )
        return outcome


def filter_candidates(
    items: List[CatalogItemRecord],
    constraints: FilterConstraints,
) -> List[CatalogItemRecord]:
    """Run the pipeline and return only the surviving items."""
    return CandidateFilterPipeline(constraints).run(items).items
