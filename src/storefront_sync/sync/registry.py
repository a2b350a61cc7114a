# SPDX-License-Identifier: MIT
"""Reference-counted registry of open sync channels, one per sync key."""

import asyncio
import itertools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from ..enums import ChannelState
from ..logging_config import get_detail_logger, get_status_logger
from ..models import QueryDescriptor, Snapshot
from .cache_bridge import CacheBridge
from .channels import SyncChannel, Teardown


detail_logger = get_detail_logger()
status_logger = get_status_logger()

SnapshotListener = Callable[[Snapshot], None]
ChannelFactory = Callable[["SubscriptionEntry"], Awaitable[SyncChannel]]

# Channel states that need replacing when a consumer attaches to a live entry
_DEAD_STATES = (ChannelState.FAILED, ChannelState.STOPPED)


@dataclass
class SubscriptionEntry:
    """Book-keeping for one sync key with at least one consumer."""

    key: str
    descriptor: QueryDescriptor
    channel: SyncChannel | None = None
    teardown: Teardown | None = None
    listeners: dict[int, SnapshotListener] = field(default_factory=dict)
    ref_count: int = 0
    active: bool = True


class DetachHandle:
    """Releases one consumer's hold on a sync key. Calling it twice is a no-op."""

    def __init__(
        self, registry: "SubscriptionRegistry", entry: SubscriptionEntry, token: int
    ):
        self._registry = registry
        self._entry = entry
        self._token = token
        self._detached = False

    @property
    def key(self) -> str:
        return self._entry.key

    @property
    def detached(self) -> bool:
        return self._detached

    def __call__(self) -> None:
        if self._detached:
            return
        self._detached = True
        self._registry.detach(self._entry, self._token)


class SubscriptionRegistry:
    """Tracks the open channel, listeners and ref count of every sync key.

    Attaching is serialized per key, so concurrent consumers of the same
    key share one channel. Detaching is synchronous. Snapshots from an
    entry that is no longer active never reach the cache.
    """

    def __init__(self, cache: CacheBridge) -> None:
        self.cache = cache
        self._entries: dict[str, SubscriptionEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        # Attach calls holding or waiting on each key's lock
        self._lock_users: dict[str, int] = {}
        self._tokens = itertools.count(1)

    def _acquire_lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        return lock

    def _release_lock_for(self, key: str) -> None:
        self._lock_users[key] -= 1
        self._discard_lock(key)

    def _discard_lock(self, key: str) -> None:
        """Forget a key's lock once no entry and no attach call needs it."""
        if key in self._entries or self._lock_users.get(key, 0) > 0:
            return
        self._locks.pop(key, None)
        self._lock_users.pop(key, None)

    def get(self, key: str) -> SubscriptionEntry | None:
        return self._entries.get(key)

    def keys(self) -> list[str]:
        return list(self._entries.keys())

    async def attach(
        self,
        descriptor: QueryDescriptor,
        listener: SnapshotListener,
        open_channel: ChannelFactory,
    ) -> DetachHandle:
        """Add a consumer to the key of ``descriptor``.

        The first consumer of a key opens its channel through
        ``open_channel``. Later consumers share it and immediately receive
        the latest cached snapshot. A channel that has failed is replaced by
        a new one.

        Args:
            descriptor: Query the consumer wants
            listener: Called with every snapshot for the key
            open_channel: Coroutine function creating the channel for an entry

        Returns:
            Handle that releases this consumer
        """
        key = descriptor.sync_key

        lock = self._acquire_lock_for(key)
        try:
            async with lock:
                return await self._attach_locked(key, descriptor, listener, open_channel)
        finally:
            self._release_lock_for(key)

    async def _attach_locked(
        self,
        key: str,
        descriptor: QueryDescriptor,
        listener: SnapshotListener,
        open_channel: ChannelFactory,
    ) -> DetachHandle:
        entry = self._entries.get(key)
        is_new = entry is None
        if entry is None:
            entry = SubscriptionEntry(key=key, descriptor=descriptor)
            self._entries[key] = entry

        token = next(self._tokens)
        entry.listeners[token] = listener
        entry.ref_count += 1

        if is_new:
            try:
                await self._open(entry, open_channel)
            except BaseException:
                self._remove(entry)
                self._stop_channel(entry)
                raise
            return DetachHandle(self, entry, token)

        detail_logger.debug(f"Attached to {key}, ref_count={entry.ref_count}")
        cached = self.cache.read(key)
        if cached is not None:
            self._deliver(entry, listener, cached)
        if entry.channel is None or entry.channel.state in _DEAD_STATES:
            status_logger.info(f"Reopening live updates for '{descriptor.collection}'")
            self._stop_channel(entry)
            try:
                await self._open(entry, open_channel)
            except BaseException:
                self._release_consumer(entry, token)
                raise

        return DetachHandle(self, entry, token)

    async def _open(self, entry: SubscriptionEntry, open_channel: ChannelFactory) -> None:
        channel = await open_channel(entry)
        entry.channel = channel
        entry.teardown = await channel.start()
        if not entry.active:
            # Closed while the channel was starting
            self._stop_channel(entry)
            return
        detail_logger.debug(f"Opened {channel.kind.value} channel for {entry.key}")

    def detach(self, entry: SubscriptionEntry, token: int) -> None:
        """Release one consumer of an entry; tears the channel down at zero."""
        if not entry.active:
            return
        self._release_consumer(entry, token)

    def _release_consumer(self, entry: SubscriptionEntry, token: int) -> None:
        if entry.listeners.pop(token, None) is None:
            return
        entry.ref_count -= 1
        detail_logger.debug(f"Detached from {entry.key}, ref_count={entry.ref_count}")
        if entry.ref_count <= 0:
            self._remove(entry)
            self._stop_channel(entry)
            detail_logger.debug(f"Closed channel for {entry.key}")

    def publish(self, entry: SubscriptionEntry, snapshot: Snapshot) -> None:
        """Store a channel's snapshot and fan it out to the entry's listeners."""
        if not entry.active:
            detail_logger.debug(f"Discarding snapshot for closed entry {entry.key}")
            return
        self.cache.write(entry.key, snapshot)
        for listener in list(entry.listeners.values()):
            self._deliver(entry, listener, snapshot)

    def _deliver(
        self, entry: SubscriptionEntry, listener: SnapshotListener, snapshot: Snapshot
    ) -> None:
        try:
            listener(snapshot)
        except Exception as e:
            status_logger.warning(
                f"Consumer of '{entry.descriptor.collection}' failed on update: {e}"
            )
            detail_logger.exception(f"Listener for {entry.key} raised")

    def _remove(self, entry: SubscriptionEntry) -> None:
        entry.active = False
        if self._entries.get(entry.key) is entry:
            del self._entries[entry.key]
        self._discard_lock(entry.key)

    def _stop_channel(self, entry: SubscriptionEntry) -> None:
        teardown, entry.teardown = entry.teardown, None
        if teardown is not None:
            teardown()
        elif entry.channel is not None:
            entry.channel.stop()

    async def close_all(self) -> None:
        """Tear down every channel regardless of ref counts."""
        entries = list(self._entries.values())
        for entry in entries:
            self._remove(entry)
            entry.listeners.clear()
            entry.ref_count = 0
            self._stop_channel(entry)

        for entry in entries:
            if entry.channel is not None:
                await entry.channel.wait_stopped()
        if entries:
            detail_logger.debug(f"Closed {len(entries)} channel(s)")
