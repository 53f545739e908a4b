"""Deterministic keyword-overlap scoring used when generative ranking is unavailable.

Nothing in here calls an external service.
"""

import logging
from typing import List, Optional

from fitrank.catalog.text import determine_category, item_text
from fitrank.recommend.style_guide import (
    BODY_SHAPE_KEYWORDS,
    DEFAULT_SIZE_NOTE,
    SIZE_RECOMMENDATIONS,
    canonical_body_shape,
)
from fitrank.recommend.types import CatalogItemRecord, RankedEntry

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 0.5


def score(item: CatalogItemRecord, profile_label: Optional[str]) -> float:
    """
    Keyword overlap between an item and a body shape, in [0, 1].

    Unknown labels and shapes without keywords score a neutral 0.5 for every
    item.
    """
    keywords = BODY_SHAPE_KEYWORDS.get(canonical_body_shape(profile_label), [])
    if not keywords:
        return NEUTRAL_SCORE
    text = item_text(item)
    found = sum(1 for kw in keywords if kw.lower() in text)
    return min(max(found / len(keywords), 0.0), 1.0)


def size_note(item: CatalogItemRecord, profile_label: Optional[str]) -> str:
    by_category = SIZE_RECOMMENDATIONS.get(canonical_body_shape(profile_label))
    if not by_category:
        return DEFAULT_SIZE_NOTE
    return by_category.get(determine_category(item), DEFAULT_SIZE_NOTE)


def rationale(profile_label: Optional[str], suitability: float) -> str:
    shape = profile_label or "your"
    if suitability > 0.7:
        return f"Excellent match for {shape} body shape - this style is highly recommended for your figure"
    if suitability > 0.5:
        return f"Good choice for {shape} body shape - this style complements your figure well"
    return f"Suitable option for {shape} body shape - consider your personal style preferences"


def rank(
    items: List[CatalogItemRecord],
    profile_label: Optional[str],
    min_score: float,
    limit: Optional[int] = None,
) -> List[RankedEntry]:
    """
    Score every item and keep those at or above the threshold.

    Args:
        items: Filtered candidates; entry indexes refer to this list
        profile_label: Body shape label
        min_score: Threshold on the 0-100 scale
        limit: Maximum number of entries (optional)

    Returns:
        RankedEntries on the 0-100 scale, best first
    """
    threshold = min_score / 100.0
    entries: List[RankedEntry] = []
    for index, item in enumerate(items):
        suitability = score(item, profile_label)
        if suitability < threshold:
            continue
        entries.append(
            RankedEntry(
                index=index,
                score=suitability * 100.0,
                rationale=rationale(profile_label, suitability),
                size_advice=size_note(item, profile_label),
                styling_tip="",
            )
        )

    # Stable sort keeps priority order among equal scores
    entries.sort(key=lambda e: e.score, reverse=True)
    if limit is not None:
        entries = entries[:limit]

    logger.debug(f"Fallback scored {len(items)} items, {len(entries)} above {min_score}")
    return entries
