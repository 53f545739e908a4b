"""SQLAlchemy database models."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on PostgreSQL, plain JSON elsewhere (sqlite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the naive DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class CatalogItem(Base):
    """Cached catalog item, one row per (tenant, item id).

    Visual-analysis columns stay empty for items the analysis job has not
    processed yet.
    """

    __tablename__ = "catalog_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant: Mapped[str] = mapped_column(String(255), nullable=False)
    item_id: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    tags: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    compare_at_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    in_stock: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    available_sizes: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    handle: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Priority inputs
    inventory_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    total_sold: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    profit_margin: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Visual analysis
    detected_colors: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    color_seasons: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    silhouette: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    style_tags: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    fabric: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    design_details: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    pattern: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    # Cached ranking boost
    priority_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    priority_calculated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    # Set by the ingestion upsert only; score refreshes leave it untouched
    last_updated: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant", "item_id", name="uq_catalog_items_tenant_item"),
        Index("ix_catalog_items_tenant_priority", "tenant", "priority_score"),
    )


class TenantSettings(Base):
    """Per-tenant overrides. NULL columns fall back to process-wide defaults."""

    __tablename__ = "tenant_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    # Ranking service
    ranking_enabled: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    api_key: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    model: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    temperature: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_tokens: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    system_prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recommendation_prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Quota
    rate_limit_enabled: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    requests_per_minute: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    requests_per_day: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Recommendation defaults
    number_of_suggestions: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    minimum_match_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_products_to_scan: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Budget bands
    budget_low_max: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    budget_medium_max: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    budget_high_max: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class PrioritySettings(Base):
    """Per-tenant priority weights used to precompute catalog priority scores."""

    __tablename__ = "priority_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    strategy: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    new_arrival_boost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    overstock_boost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    slow_mover_boost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    high_margin_boost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    on_sale_boost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    new_arrival_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    overstock_threshold: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    slow_mover_threshold: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )
