"""Tests for the catalog item cache."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from fitrank.catalog import cache_store

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


async def _store(db, items, weights=None, now=NOW):
    for item in items:
        await cache_store.upsert(db, item.tenant, item.item_id, item, weights=weights, now=now)


class TestUpsertAndQuery:

    async def test_query_orders_by_priority(self, db_session, make_item, weights):
        on_sale = make_item(price=49.0, compare_at_price=80.0)
        plain = make_item()
        fresh = make_item(published_at=NOW - timedelta(days=3))
        await _store(db_session, [on_sale, plain, fresh], weights=weights)

        records = await cache_store.query(db_session, "shop.example.com")

        assert [r.item_id for r in records] == [on_sale.item_id, fresh.item_id, plain.item_id]
        assert records[0].priority_score == pytest.approx(50.0)
        assert records[1].priority_score == pytest.approx(45.0)
        assert records[2].priority_score == 0.0

    async def test_ties_broken_by_item_id(self, db_session, make_item):
        items = [make_item(item_id=i) for i in ("c", "a", "b")]
        await _store(db_session, items)

        records = await cache_store.query(db_session, "shop.example.com")

        assert [r.item_id for r in records] == ["a", "b", "c"]

    async def test_upsert_replaces_existing(self, db_session, make_item):
        item = make_item(item_id="sku-1", title="Old title", tags=["old"])
        await _store(db_session, [item])
        await _store(db_session, [replace(item, title="New title", tags=["new", "midi"])])

        records = await cache_store.query(db_session, "shop.example.com")

        assert len(records) == 1
        assert records[0].title == "New title"
        assert records[0].tags == ["new", "midi"]

    async def test_score_carried_without_weights(self, db_session, make_item):
        item = make_item(priority_score=12.5)
        stored = await cache_store.upsert(db_session, item.tenant, item.item_id, item)
        assert stored.priority_score == 12.5

    async def test_query_filters(self, db_session, make_item):
        items = [
            make_item(price=10.0, priority_score=4.0),
            make_item(price=60.0, in_stock=False, priority_score=3.0),
            make_item(price=90.0, priority_score=2.0),
            make_item(price=120.0, priority_score=1.0),
        ]
        await _store(db_session, items)

        in_stock = await cache_store.query(db_session, "shop.example.com", in_stock=True)
        assert [r.price for r in in_stock] == [10.0, 90.0, 120.0]

        pricey = await cache_store.query(db_session, "shop.example.com", min_price=60.0)
        assert [r.price for r in pricey] == [60.0, 90.0, 120.0]

        top_two = await cache_store.query(db_session, "shop.example.com", limit=2)
        assert [r.price for r in top_two] == [10.0, 60.0]

    async def test_tenants_are_isolated(self, db_session, make_item):
        await _store(db_session, [make_item(tenant="shop-a"), make_item(tenant="shop-b")])

        records = await cache_store.query(db_session, "shop-a")

        assert [r.tenant for r in records] == ["shop-a"]

    async def test_visual_analysis_round_trips(self, db_session, make_item):
        item = make_item(color_seasons=["Autumn"], silhouette="wrap", design_details=["belt"])
        await _store(db_session, [item])

        record = (await cache_store.query(db_session, "shop.example.com"))[0]

        assert record.color_seasons == ["Autumn"]
        assert record.silhouette == "wrap"
        assert record.has_visual_analysis


class TestRefresh:

    async def test_refresh_reorders(self, db_session, make_item, weights):
        on_sale = make_item(price=49.0, compare_at_price=80.0)
        plain = make_item()
        fresh = make_item(published_at=NOW - timedelta(days=3))
        await _store(db_session, [on_sale, plain, fresh], weights=weights)

        new_weights = replace(weights, on_sale_boost=0.0, new_arrival_boost=100.0, strategy="new_arrivals")
        updated = await cache_store.refresh_priority_scores(db_session, "shop.example.com", new_weights, now=NOW)

        assert updated == 3
        records = await cache_store.query(db_session, "shop.example.com")
        assert [r.item_id for r in records] == [fresh.item_id, on_sale.item_id, plain.item_id]
        assert records[0].priority_score == pytest.approx(90.0)
        assert records[0].priority_calculated_at == NOW.replace(tzinfo=None)

    async def test_refresh_other_tenant_untouched(self, db_session, make_item, weights):
        other = make_item(tenant="shop-b", price=49.0, compare_at_price=80.0)
        await _store(db_session, [other], weights=weights)

        updated = await cache_store.refresh_priority_scores(
            db_session, "shop.example.com", replace(weights, on_sale_boost=0.0), now=NOW
        )

        assert updated == 0
        record = (await cache_store.query(db_session, "shop-b"))[0]
        assert record.priority_score == pytest.approx(50.0)


class TestStaleItems:

    async def test_stale_item_ids(self, db_session, make_item):
        old = make_item(item_id="old")
        recent = make_item(item_id="recent")
        await _store(db_session, [old], now=NOW - timedelta(days=45))
        await _store(db_session, [recent], now=NOW - timedelta(days=2))

        assert await cache_store.stale_item_ids(db_session, "shop.example.com", max_age_days=30, now=NOW) == ["old"]
        assert await cache_store.stale_item_ids(db_session, "shop.example.com", max_age_days=1, now=NOW) == [
            "old",
            "recent",
        ]
