# SPDX-License-Identifier: MIT
"""Pytest configuration and shared fixtures."""

import pytest
import pytest_asyncio

from storefront_sync.config import reset_config_manager
from storefront_sync.models import Snapshot
from storefront_sync.query import CollectionQueryBuilder
from storefront_sync.settings import CostControl, InMemorySettingsStore
from storefront_sync.stores import InMemoryCollectionStore
from storefront_sync.sync import CacheBridge, SubscriptionRegistry, SyncStrategySelector


@pytest.fixture(autouse=True)
def isolated_config_manager():
    """Reset the global config manager around every test."""
    reset_config_manager()
    yield
    reset_config_manager()


@pytest.fixture
def builder():
    """Query builder with the default collection definitions."""
    return CollectionQueryBuilder()


@pytest.fixture
def memory_store():
    """Empty in-memory collection store."""
    return InMemoryCollectionStore()


@pytest.fixture
def settings_store():
    """Settings store with no saved document."""
    return InMemorySettingsStore()


@pytest.fixture
def cost_control(settings_store):
    """Cost-control accessor reading the in-memory settings store."""
    return CostControl(settings_store)


@pytest.fixture
def cache():
    """Empty cache bridge."""
    return CacheBridge()


@pytest.fixture
def registry(cache):
    """Subscription registry bound to the cache fixture."""
    return SubscriptionRegistry(cache)


@pytest_asyncio.fixture
async def selector(builder, cost_control, memory_store, cache, registry):
    """Selector wired to in-memory stores; closes all channels afterwards."""
    selector = SyncStrategySelector(
        builder, cost_control, memory_store, cache=cache, registry=registry
    )
    yield selector
    await selector.close_all()


class SnapshotRecorder:
    """Listener collecting every snapshot it receives."""

    def __init__(self) -> None:
        self.snapshots: list[Snapshot] = []

    def __call__(self, snapshot: Snapshot) -> None:
        self.snapshots.append(snapshot)

    @property
    def latest(self) -> Snapshot | None:
        return self.snapshots[-1] if self.snapshots else None

    def ids(self, index: int = -1) -> list[str]:
        return [r["id"] for r in self.snapshots[index].records]


@pytest.fixture
def recorder():
    """Fresh snapshot recorder."""
    return SnapshotRecorder()


@pytest.fixture
def recorder_factory():
    """Factory for additional snapshot recorders."""
    return SnapshotRecorder
