# SPDX-License-Identifier: MIT
"""Push and poll channels that keep one sync key fresh."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable

from ..enums import ChannelKind, ChannelState, ClientFilter
from ..logging_config import get_detail_logger, get_status_logger
from ..models import QueryDescriptor, Record, Snapshot
from ..stores.protocols import CollectionStore, Unsubscribe


Teardown = Callable[[], None]
SnapshotSink = Callable[[Snapshot], None]


def _is_unread(record: Record) -> bool:
    return not record.get("readAt")


_CLIENT_PREDICATES: dict[ClientFilter, Callable[[Record], bool]] = {
    ClientFilter.UNREAD: _is_unread,
}


def apply_client_filters(
    records: Iterable[Record], client_filters: Iterable[ClientFilter]
) -> list[Record]:
    """Apply post-query predicates the store cannot evaluate."""
    predicates = [_CLIENT_PREDICATES[f] for f in client_filters]
    return [r for r in records if all(p(r) for p in predicates)]


class SyncChannel(ABC):
    """Keeps the snapshot for one query descriptor up to date.

    A channel emits complete snapshots to its sink until stopped. Nothing is
    emitted after :meth:`stop` returns.
    """

    kind: ChannelKind

    def __init__(
        self,
        descriptor: QueryDescriptor,
        store: CollectionStore,
        on_snapshot: SnapshotSink,
    ):
        self.descriptor = descriptor
        self.store = store
        self.on_snapshot = on_snapshot
        self.state = ChannelState.IDLE
        self.detail_logger = get_detail_logger()
        self.status_logger = get_status_logger()

    @property
    def key(self) -> str:
        return self.descriptor.sync_key

    @property
    def failed(self) -> bool:
        return self.state == ChannelState.FAILED

    def _emit(self, records: list[Record]) -> None:
        snapshot = Snapshot(
            key=self.key,
            collection=self.descriptor.collection,
            records=tuple(
                apply_client_filters(records, self.descriptor.client_filters)
            ),
            channel_kind=self.kind,
        )
        self.on_snapshot(snapshot)

    @abstractmethod
    async def start(self) -> Teardown:
        """Begin producing snapshots.

        Returns:
            Teardown callable, equivalent to :meth:`stop`
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop producing snapshots. Idempotent."""
        pass

    async def wait_stopped(self) -> None:
        """Wait for background work started by the channel to finish."""
        return None


class PushChannel(SyncChannel):
    """Mirrors a live store subscription.

    A transport error leaves the channel inert: it stops emitting and the
    last snapshot stays where it was cached. There is no fallback to polling.
    """

    kind = ChannelKind.PUSH

    def __init__(
        self,
        descriptor: QueryDescriptor,
        store: CollectionStore,
        on_snapshot: SnapshotSink,
    ):
        super().__init__(descriptor, store, on_snapshot)
        self._unsubscribe: Unsubscribe | None = None

    async def start(self) -> Teardown:
        if self.state != ChannelState.IDLE:
            return self.stop
        self.state = ChannelState.RUNNING
        try:
            unsubscribe = await self.store.listen(
                self.descriptor, self._on_records, self._on_error
            )
        except Exception as e:
            self._fail(e)
            return self.stop

        if self.state != ChannelState.RUNNING:
            # Stopped or failed while the subscription was opening
            unsubscribe()
        else:
            self._unsubscribe = unsubscribe
            self.detail_logger.debug(f"Push channel open: {self.key}")
        return self.stop

    def _on_records(self, records: list[Record]) -> None:
        if self.state != ChannelState.RUNNING:
            return
        self._emit(records)

    def _on_error(self, error: Exception) -> None:
        if self.state != ChannelState.RUNNING:
            return
        self._fail(error)

    def _fail(self, error: Exception) -> None:
        self.state = ChannelState.FAILED
        self.status_logger.warning(
            f"Live updates for '{self.descriptor.collection}' stopped, "
            f"showing last known data: {error}"
        )
        self.detail_logger.error(f"Push channel failed: {self.key}: {error!r}")
        self._release()

    def _release(self) -> None:
        if self._unsubscribe is not None:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
            unsubscribe()

    def stop(self) -> None:
        if self.state == ChannelState.STOPPED:
            return
        self.state = ChannelState.STOPPED
        self._release()
        self.detail_logger.debug(f"Push channel stopped: {self.key}")


class PollChannel(SyncChannel):
    """Re-runs the query on a fixed schedule.

    Iterations never overlap. When a query overruns its slot, the ticks it
    missed are skipped and the schedule resumes at the next future tick. A
    failed iteration is logged and the schedule carries on.
    """

    kind = ChannelKind.POLL

    def __init__(
        self,
        descriptor: QueryDescriptor,
        store: CollectionStore,
        on_snapshot: SnapshotSink,
        interval_seconds: float,
    ):
        super().__init__(descriptor, store, on_snapshot)
        self.interval_seconds = interval_seconds
        self.iterations = 0
        self.skipped_ticks = 0
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> Teardown:
        if self.state != ChannelState.IDLE:
            return self.stop
        self.state = ChannelState.RUNNING
        await self._poll_once()
        if self.state == ChannelState.RUNNING:
            self._task = asyncio.create_task(self._run())
            self.detail_logger.debug(
                f"Poll channel open every {self.interval_seconds}s: {self.key}"
            )
        return self.stop

    async def _poll_once(self) -> None:
        self.iterations += 1
        try:
            records = await self.store.fetch(self.descriptor)
        except Exception as e:
            self.status_logger.warning(
                f"Refresh of '{self.descriptor.collection}' failed, "
                f"retrying in {self.interval_seconds}s: {e}"
            )
            self.detail_logger.exception(f"Poll iteration failed: {self.key}")
            return

        if self.state != ChannelState.RUNNING:
            self.detail_logger.debug(f"Discarding poll result after stop: {self.key}")
            return
        self._emit(records)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.interval_seconds

        while not self._stop_event.is_set():
            delay = next_tick - loop.time()
            if delay > 0:
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                    break
                except asyncio.TimeoutError:
                    pass

            await self._poll_once()

            next_tick += self.interval_seconds
            now = loop.time()
            if next_tick <= now:
                missed = int((now - next_tick) // self.interval_seconds) + 1
                next_tick += missed * self.interval_seconds
                self.skipped_ticks += missed
                self.detail_logger.debug(
                    f"Poll overran its interval, skipped {missed} tick(s): {self.key}"
                )

    def stop(self) -> None:
        if self.state == ChannelState.STOPPED:
            return
        self.state = ChannelState.STOPPED
        self._stop_event.set()
        self.detail_logger.debug(f"Poll channel stopped: {self.key}")

    async def wait_stopped(self) -> None:
        if self._task is not None:
            await self._task
