# SPDX-License-Identifier: MIT
"""Tests for the in-memory collection store."""

import asyncio

import pytest

from storefront_sync.enums import FilterOperator, SortDirection
from storefront_sync.exceptions import StoreConnectionError
from storefront_sync.models import OrderClause, QueryDescriptor, QueryFilter
from storefront_sync.stores import CollectionStore, InMemoryCollectionStore


def _descriptor(**kwargs):
    defaults = {
        "collection": "orders",
        "path": "orders",
        "order_by": (OrderClause(field="createdAt"),),
    }
    defaults.update(kwargs)
    return QueryDescriptor(**defaults)


@pytest.fixture
def orders_store(memory_store):
    """Store holding three orders for two customers."""
    memory_store.put("orders", "o1", {"customerId": "c1", "status": "pending", "createdAt": 1})
    memory_store.put("orders", "o2", {"customerId": "c2", "status": "paid", "createdAt": 2})
    memory_store.put("orders", "o3", {"customerId": "c1", "status": "paid", "createdAt": 3})
    return memory_store


class TestFetch:
    """Tests for InMemoryCollectionStore.fetch."""

    def test_satisfies_protocol(self, memory_store):
        """Test the store satisfies the CollectionStore protocol."""
        assert isinstance(memory_store, CollectionStore)

    @pytest.mark.asyncio
    async def test_equality_filter_and_order(self, orders_store):
        """Test equality filters with newest-first ordering."""
        records = await orders_store.fetch(
            _descriptor(filters=(QueryFilter(field="customerId", value="c1"),))
        )

        assert [r["id"] for r in records] == ["o3", "o1"]

    @pytest.mark.asyncio
    async def test_in_filter(self, orders_store):
        """Test membership filters."""
        records = await orders_store.fetch(
            _descriptor(
                filters=(
                    QueryFilter(
                        field="status", operator=FilterOperator.IN, value=["pending"]
                    ),
                )
            )
        )

        assert [r["id"] for r in records] == ["o1"]

    @pytest.mark.asyncio
    async def test_array_contains_and_dotted_fields(self, memory_store):
        """Test array-contains and nested field paths."""
        memory_store.put(
            "items", "p1", {"categoryIds": ["a", "b"], "meta": {"owner": "x"}}
        )
        memory_store.put("items", "p2", {"categoryIds": ["c"], "meta": {"owner": "x"}})

        records = await memory_store.fetch(
            QueryDescriptor(
                collection="products",
                path="items",
                filters=(
                    QueryFilter(
                        field="categoryIds",
                        operator=FilterOperator.ARRAY_CONTAINS,
                        value="b",
                    ),
                    QueryFilter(field="meta.owner", value="x"),
                ),
            )
        )

        assert [r["id"] for r in records] == ["p1"]

    @pytest.mark.asyncio
    async def test_ascending_order_and_missing_fields_last(self, memory_store):
        """Test ascending order puts documents without the field last."""
        memory_store.put("categories", "c1", {"name": "Shoes"})
        memory_store.put("categories", "c2", {})
        memory_store.put("categories", "c3", {"name": "Bags"})

        records = await memory_store.fetch(
            QueryDescriptor(
                collection="categories",
                path="categories",
                order_by=(OrderClause(field="name", direction=SortDirection.ASCENDING),),
            )
        )

        assert [r["id"] for r in records] == ["c3", "c1", "c2"]

    @pytest.mark.asyncio
    async def test_limit(self, orders_store):
        """Test the result cap."""
        records = await orders_store.fetch(_descriptor(limit=2))

        assert [r["id"] for r in records] == ["o3", "o2"]

    @pytest.mark.asyncio
    async def test_records_are_copies(self, orders_store):
        """Test callers cannot mutate stored documents."""
        records = await orders_store.fetch(_descriptor())
        records[0]["status"] = "tampered"

        again = await orders_store.fetch(_descriptor())
        assert again[0]["status"] == "paid"

    @pytest.mark.asyncio
    async def test_counts_fetches(self, orders_store):
        """Test each point-in-time query is counted."""
        await orders_store.fetch(_descriptor())
        await orders_store.fetch(_descriptor())

        assert orders_store.fetch_count == 2


class TestListen:
    """Tests for InMemoryCollectionStore.listen."""

    @pytest.mark.asyncio
    async def test_initial_state_then_changes(self, orders_store):
        """Test listeners get the current result set and every change."""
        received = []
        await orders_store.listen(
            _descriptor(filters=(QueryFilter(field="customerId", value="c1"),)),
            received.append,
            lambda e: None,
        )
        await asyncio.sleep(0)

        orders_store.put("orders", "o4", {"customerId": "c1", "createdAt": 4})
        orders_store.put("orders", "o5", {"customerId": "c2", "createdAt": 5})
        orders_store.delete("orders", "o1")

        assert [[r["id"] for r in batch] for batch in received] == [
            ["o3", "o1"],
            ["o4", "o3", "o1"],
            ["o4", "o3", "o1"],
            ["o4", "o3"],
        ]

    @pytest.mark.asyncio
    async def test_unsubscribe_is_idempotent(self, orders_store):
        """Test unsubscribing stops notifications and may be repeated."""
        received = []
        unsubscribe = await orders_store.listen(
            _descriptor(), received.append, lambda e: None
        )
        unsubscribe()
        unsubscribe()
        await asyncio.sleep(0)

        orders_store.put("orders", "o9", {"createdAt": 9})

        assert received == []
        assert orders_store.listener_count() == 0

    @pytest.mark.asyncio
    async def test_fail_listeners(self, orders_store):
        """Test transport failures reach the error callback."""
        errors = []
        await orders_store.listen(_descriptor(), lambda r: None, errors.append)

        orders_store.fail_listeners("orders", StoreConnectionError("gone"))

        assert len(errors) == 1
        assert orders_store.listener_count("orders") == 0
