# SPDX-License-Identifier: MIT
"""Entry point for consumers: open or share the channel behind a query."""

from collections.abc import Mapping
from functools import partial
from typing import Any

from ..logging_config import get_detail_logger
from ..query.builder import CollectionQueryBuilder
from ..settings.cost_control import CostControl
from ..stores.protocols import CollectionStore
from .cache_bridge import CacheBridge
from .channels import PollChannel, PushChannel, SyncChannel
from .registry import DetachHandle, SnapshotListener, SubscriptionEntry, SubscriptionRegistry


detail_logger = get_detail_logger()


class SyncStrategySelector:
    """Chooses push or poll for each new sync key and shares open channels.

    The choice is made once, when the first consumer of a key opens it.
    Later changes to the cost-control settings apply to channels opened
    after the change; channels already open keep their strategy.
    """

    def __init__(
        self,
        builder: CollectionQueryBuilder,
        cost_control: CostControl,
        store: CollectionStore,
        cache: CacheBridge | None = None,
        registry: SubscriptionRegistry | None = None,
    ):
        self.builder = builder
        self.cost_control = cost_control
        self.store = store
        self.cache = cache if cache is not None else CacheBridge()
        self.registry = registry if registry is not None else SubscriptionRegistry(self.cache)

    async def open_or_attach(
        self,
        collection: str,
        options: Mapping[str, Any] | None,
        on_snapshot: SnapshotListener,
    ) -> DetachHandle:
        """Subscribe a consumer to a collection query.

        Args:
            collection: Logical collection name
            options: Query options for the collection
            on_snapshot: Called with the full result set on every update

        Returns:
            Handle that releases the subscription when called

        Raises:
            UnknownCollectionError: If the collection has no query definition
            ValueError: If an option or the limit is invalid
        """
        descriptor = self.builder.build(collection, options)
        return await self.registry.attach(descriptor, on_snapshot, self._open_channel)

    async def _open_channel(self, entry: SubscriptionEntry) -> SyncChannel:
        descriptor = entry.descriptor
        sink = partial(self.registry.publish, entry)

        if await self.cost_control.is_push_enabled(descriptor.collection):
            detail_logger.debug(f"Using push for {entry.key}")
            return PushChannel(descriptor, self.store, sink)

        interval = await self.cost_control.get_polling_interval_seconds()
        detail_logger.debug(f"Using poll every {interval}s for {entry.key}")
        return PollChannel(descriptor, self.store, sink, interval)

    def active_keys(self) -> list[str]:
        """Sync keys that currently have an open channel."""
        return self.registry.keys()

    async def close_all(self) -> None:
        """Tear down every open channel, e.g. at process shutdown."""
        await self.registry.close_all()
