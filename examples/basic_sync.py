#!/usr/bin/env python3
# SPDX-License-Identifier: MIT
"""
Basic synchronization examples using the storefront-sync Python API.

This script demonstrates:
1. A live (push) order feed shared by two consumers
2. A polled product list after switching products to polling
3. Teardown once the last consumer detaches
"""

import asyncio

from storefront_sync import CollectionQueryBuilder, CostControl, SyncStrategySelector
from storefront_sync.settings import InMemorySettingsStore
from storefront_sync.stores import InMemoryCollectionStore


def show(label):
    """Print each snapshot a consumer receives."""

    def on_snapshot(snapshot):
        ids = [record["id"] for record in snapshot.records]
        print(f"[{label}] {snapshot.channel_kind.value}: {ids}")

    return on_snapshot


async def main():
    store = InMemoryCollectionStore()
    store.put("orders", "o1", {"customerId": "c1", "status": "pending", "createdAt": 1})
    store.put("items", "p1", {"type": "product", "businessId": "b1", "createdAt": 1})

    cost_control = CostControl(InMemorySettingsStore())
    selector = SyncStrategySelector(CollectionQueryBuilder(), cost_control, store)

    print("=== Live orders ===")
    header = await selector.open_or_attach("orders", {"customer_id": "c1"}, show("header"))
    page = await selector.open_or_attach("orders", {"customer_id": "c1"}, show("page"))
    await asyncio.sleep(0)
    store.put("orders", "o2", {"customerId": "c1", "status": "paid", "createdAt": 2})

    print("\n=== Polled products ===")
    await cost_control.update_settings(polling_interval_seconds=10)
    products = await selector.open_or_attach("products", {"business_id": "b1"}, show("catalog"))

    print(f"\nOpen keys: {len(selector.active_keys())}")
    for detach in (header, page, products):
        detach()
    print(f"Open keys after detach: {len(selector.active_keys())}")

    await selector.close_all()


if __name__ == "__main__":
    asyncio.run(main())
