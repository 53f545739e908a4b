"""Read/write access to the per-tenant catalog item cache."""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitrank.catalog.priority import compute_score, inputs_from_record
from fitrank.config import settings
from fitrank.db.models import CatalogItem
from fitrank.metrics import priority_scores_refreshed_total
from fitrank.recommend.types import CatalogItemRecord, PriorityWeights

logger = logging.getLogger(__name__)

_COLUMN_FIELDS = (
    "title",
    "description",
    "category",
    "tags",
    "price",
    "compare_at_price",
    "in_stock",
    "available_sizes",
    "handle",
    "image_url",
    "inventory_quantity",
    "published_at",
    "total_sold",
    "profit_margin",
    "detected_colors",
    "color_seasons",
    "silhouette",
    "style_tags",
    "fabric",
    "design_details",
    "pattern",
)


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def record_from_row(row: CatalogItem) -> CatalogItemRecord:
    """Convert an ORM row into the domain record."""
    return CatalogItemRecord(
        tenant=row.tenant,
        item_id=row.item_id,
        title=row.title,
        description=row.description or "",
        category=row.category or "",
        tags=list(row.tags or []),
        price=float(row.price or 0.0),
        compare_at_price=row.compare_at_price,
        in_stock=bool(row.in_stock),
        available_sizes=list(row.available_sizes or []),
        handle=row.handle,
        image_url=row.image_url,
        inventory_quantity=row.inventory_quantity,
        published_at=row.published_at,
        total_sold=row.total_sold,
        profit_margin=row.profit_margin,
        detected_colors=list(row.detected_colors or []),
        color_seasons=list(row.color_seasons or []),
        silhouette=row.silhouette,
        style_tags=list(row.style_tags or []),
        fabric=row.fabric,
        design_details=list(row.design_details or []),
        pattern=row.pattern,
        priority_score=row.priority_score or 0.0,
        priority_calculated_at=row.priority_calculated_at,
        last_updated=row.last_updated,
    )


async def upsert(
    db: AsyncSession,
    tenant: str,
    item_id: str,
    record: CatalogItemRecord,
    weights: Optional[PriorityWeights] = None,
    now: Optional[datetime] = None,
) -> CatalogItemRecord:
    """
    Insert or update the cached record for (tenant, item_id).

    When weights are given, the priority score is recomputed from the record's
    business attributes and stamped with the computation time. Otherwise the
    score carried by ``record`` is stored as-is.

    Args:
        db: Database session
        tenant: Tenant identifier
        item_id: Catalog item identifier
        record: Item data to store
        weights: Tenant priority weights (optional)
        now: Reference time for the score (defaults to current UTC time)

    Returns:
        The stored record
    """
    now = now or datetime.now(timezone.utc)

    result = await db.execute(
        select(CatalogItem).where(
            CatalogItem.tenant == tenant,
            CatalogItem.item_id == item_id,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = CatalogItem(tenant=tenant, item_id=item_id)
        db.add(row)

    for name in _COLUMN_FIELDS:
        value = getattr(record, name)
        if name == "published_at":
            value = _naive_utc(value)
        setattr(row, name, value)

    if weights is not None:
        row.priority_score = compute_score(inputs_from_record(record), weights, now)
        row.priority_calculated_at = _naive_utc(now)
    else:
        row.priority_score = record.priority_score
        row.priority_calculated_at = _naive_utc(record.priority_calculated_at)
    row.last_updated = _naive_utc(now)

    await db.commit()
    await db.refresh(row)

    logger.debug(
        f"Cached item {item_id} for {tenant} (priority {row.priority_score:.2f})"
    )
    return record_from_row(row)


async def query(
    db: AsyncSession,
    tenant: str,
    in_stock: Optional[bool] = None,
    min_price: Optional[float] = None,
    limit: Optional[int] = None,
) -> List[CatalogItemRecord]:
    """
    Load cached records for a tenant, highest priority first.

    Ties on priority are broken by item id so the order is stable between
    calls.

    Args:
        db: Database session
        tenant: Tenant identifier
        in_stock: Restrict to in-stock items when True
        min_price: Keep only items with ``price >= min_price``
        limit: Maximum number of records (scan limit)

    Returns:
        Ordered list of records
    """
    stmt = select(CatalogItem).where(CatalogItem.tenant == tenant)
    if in_stock:
        stmt = stmt.where(CatalogItem.in_stock.is_(True))
    if min_price is not None:
        stmt = stmt.where(CatalogItem.price >= min_price)
    stmt = stmt.order_by(CatalogItem.priority_score.desc(), CatalogItem.item_id.asc())
    if limit is not None and limit > 0:
        stmt = stmt.limit(limit)

    result = await db.execute(stmt)
    return [record_from_row(row) for row in result.scalars().all()]


async def refresh_priority_scores(
    db: AsyncSession,
    tenant: str,
    weights: PriorityWeights,
    now: Optional[datetime] = None,
) -> int:
    """Recompute every cached priority score for a tenant. Returns rows updated."""
    now = now or datetime.now(timezone.utc)
    stamped_at = _naive_utc(now)

    result = await db.execute(select(CatalogItem).where(CatalogItem.tenant == tenant))
    rows = result.scalars().all()
    for row in rows:
        row.priority_score = compute_score(inputs_from_record(record_from_row(row)), weights, now)
        row.priority_calculated_at = stamped_at

    await db.commit()

    priority_scores_refreshed_total.inc(len(rows))
    logger.info(f"Refreshed {len(rows)} priority scores for {tenant} ({weights.strategy})")
    return len(rows)


async def stale_item_ids(
    db: AsyncSession,
    tenant: str,
    max_age_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[str]:
    """Item ids whose cached data is older than the refresh cadence."""
    max_age_days = max_age_days if max_age_days is not None else settings.catalog_refresh_max_age_days
    now = now or datetime.now(timezone.utc)
    cutoff = _naive_utc(now) - timedelta(days=max_age_days)

    result = await db.execute(
        select(CatalogItem.item_id)
        .where(CatalogItem.tenant == tenant, CatalogItem.last_updated < cutoff)
        .order_by(CatalogItem.item_id)
    )
    return list(result.scalars().all())
