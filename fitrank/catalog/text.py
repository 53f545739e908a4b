"""Text helpers over catalog records."""

from fitrank.recommend.types import CatalogItemRecord


def item_text(item: CatalogItemRecord, include_visual: bool = True) -> str:
    """Lower-cased combined text of an item, used for keyword matching."""
    parts = [item.title, item.description, item.category, " ".join(item.tags)]
    if include_visual:
        parts.extend(
            [
                item.silhouette or "",
                item.fabric or "",
                item.pattern or "",
                " ".join(item.style_tags),
                " ".join(item.design_details),
            ]
        )
    return " ".join(p for p in parts if p).lower()


def determine_category(item: CatalogItemRecord) -> str:
    """Coarse category used for size notes: dresses, tops, bottoms or general."""
    text = f"{item.title} {item.description} {item.category}".lower()
    if "dress" in text:
        return "dresses"
    if "top" in text or "shirt" in text or "blouse" in text:
        return "tops"
    if "pant" in text or "jean" in text or "trouser" in text:
        return "bottoms"
    return "general"
