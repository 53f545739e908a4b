"""Turns ranked entries into the final recommendation list."""

import logging
from typing import Dict, List, Optional, Tuple

from fitrank.catalog.text import determine_category
from fitrank.recommend import fallback
from fitrank.recommend.types import CatalogItemRecord, RankedEntry, RankedRecommendation

logger = logging.getLogger(__name__)


def _identity(item: CatalogItemRecord) -> Tuple[str, str]:
    return (item.tenant, item.item_id)


def merge(
    entries: List[RankedEntry],
    candidates: List[CatalogItemRecord],
    min_score: float,
    limit: int,
    profile_label: Optional[str] = None,
) -> List[RankedRecommendation]:
    """
    Resolve, deduplicate, sort and truncate ranked entries.

    Args:
        entries: Entries on the 0-100 scale; indexes refer to ``candidates``
        candidates: The list the entries were ranked against
        min_score: Threshold on the 0-100 scale
        limit: Maximum number of recommendations
        profile_label: Body shape, used to fill in missing size notes

    Returns:
        Recommendations best first, at most one per catalog item
    """
    best: Dict[Tuple[str, str], Tuple[RankedEntry, CatalogItemRecord]] = {}
    skipped = 0

    for entry in entries:
        if entry.score < min_score:
            continue
        if not 0 <= entry.index < len(candidates):
            skipped += 1
            continue
        item = candidates[entry.index]
        key = _identity(item)
        current = best.get(key)
        if current is None or entry.score > current[0].score:
            best[key] = (entry, item)

    if skipped:
        logger.warning(f"Skipped {skipped} ranked entries with out-of-range indexes")

    ranked = sorted(best.values(), key=lambda pair: pair[0].score, reverse=True)
    if limit is not None:
        ranked = ranked[: max(limit, 0)]

    recommendations = []
    for entry, item in ranked:
        suitability = entry.score / 100.0
        recommendations.append(
            RankedRecommendation(
                item=item,
                suitability_score=suitability,
                size_note=entry.size_advice or fallback.size_note(item, profile_label),
                rationale=entry.rationale or fallback.rationale(profile_label, suitability),
                styling_note=entry.styling_tip,
                category=determine_category(item),
            )
        )
    return recommendations
