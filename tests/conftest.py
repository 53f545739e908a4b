"""Shared fixtures."""

from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fitrank.config import settings
from fitrank.db.models import Base
from fitrank.recommend.types import CatalogItemRecord, PriorityWeights

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def db_session():
    """In-memory database with all tables created."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def make_item():
    """Factory for catalog records with sensible defaults."""
    counter = {"n": 0}

    def _make(**overrides: Any) -> CatalogItemRecord:
        counter["n"] += 1
        values = {
            "tenant": "shop.example.com",
            "item_id": f"item-{counter['n']:03d}",
            "title": f"Item {counter['n']}",
            "description": "",
            "category": "",
            "price": 49.0,
            "in_stock": True,
        }
        values.update(overrides)
        return CatalogItemRecord(**values)

    return _make


@pytest.fixture
def weights():
    """Balanced weights: every boost 50, 30-day window, thresholds 10 and 5."""
    return PriorityWeights(
        strategy="balanced",
        new_arrival_boost=50.0,
        overstock_boost=50.0,
        slow_mover_boost=50.0,
        high_margin_boost=50.0,
        on_sale_boost=50.0,
        new_arrival_days=30,
        overstock_threshold=10,
        slow_mover_threshold=5,
    )


@pytest.fixture
def api_key(monkeypatch):
    """Process-wide ranking credential."""
    monkeypatch.setattr(settings, "openai_api_key", "sk-test")
    return "sk-test"


@pytest.fixture(autouse=True)
def _no_llm_cache(monkeypatch):
    monkeypatch.setattr(settings, "llm_cache_enabled", False)


@pytest.fixture
def no_api_key(monkeypatch):
    """No process-wide ranking credential."""
    monkeypatch.setattr(settings, "openai_api_key", "")
