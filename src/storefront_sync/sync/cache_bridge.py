# SPDX-License-Identifier: MIT
"""Keyed snapshot cache that UI-facing consumers read from."""

from collections.abc import Callable

from ..logging_config import get_detail_logger
from ..models import Snapshot


detail_logger = get_detail_logger()

SnapshotWatcher = Callable[[Snapshot], None]


class CacheBridge:
    """Latest snapshot per sync key.

    Every write replaces the stored snapshot for its key. Watchers bound to
    a key are called after each write, the way a reactive query cache
    re-renders its subscribers.
    """

    def __init__(self) -> None:
        self._snapshots: dict[str, Snapshot] = {}
        self._watchers: dict[str, list[SnapshotWatcher]] = {}

    def write(self, key: str, snapshot: Snapshot) -> None:
        """Replace the snapshot stored under ``key``."""
        self._snapshots[key] = snapshot
        detail_logger.debug(f"Cache write {key} ({len(snapshot.records)} records)")

        for watcher in list(self._watchers.get(key, [])):
            try:
                watcher(snapshot)
            except Exception:
                detail_logger.exception(f"Cache watcher for {key} raised")

    def read(self, key: str) -> Snapshot | None:
        return self._snapshots.get(key)

    def watch(self, key: str, watcher: SnapshotWatcher) -> Callable[[], None]:
        """Call ``watcher`` after every write to ``key``.

        Returns:
            Callable removing the watcher; safe to call more than once
        """
        watchers = self._watchers.setdefault(key, [])
        watchers.append(watcher)

        def unwatch() -> None:
            current = self._watchers.get(key, [])
            if watcher in current:
                current.remove(watcher)
            if not current:
                self._watchers.pop(key, None)

        return unwatch

    def evict(self, key: str) -> None:
        """Forget the snapshot stored under ``key``."""
        self._snapshots.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._snapshots.keys())
