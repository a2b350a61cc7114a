# SPDX-License-Identifier: MIT
"""In-process collection store evaluating query descriptors over plain dicts."""

import asyncio
import copy
from dataclasses import dataclass
from typing import Any

from ..enums import FilterOperator, SortDirection
from ..logging_config import get_detail_logger
from ..models import QueryDescriptor, QueryFilter, Record
from .protocols import OnError, OnRecords, Unsubscribe


detail_logger = get_detail_logger()

_MISSING = object()


def get_field(document: dict[str, Any], path: str) -> Any:
    """Resolve a dotted field path such as ``recipient.userId``."""
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def matches(document: dict[str, Any], query_filter: QueryFilter) -> bool:
    """Check one document against one filter clause."""
    value = get_field(document, query_filter.field)
    if value is _MISSING:
        return False
    if query_filter.operator == FilterOperator.EQUAL:
        return bool(value == query_filter.value)
    if query_filter.operator == FilterOperator.IN:
        return value in query_filter.value
    if query_filter.operator == FilterOperator.ARRAY_CONTAINS:
        return isinstance(value, (list, tuple)) and query_filter.value in value
    raise ValueError(f"Unsupported operator: {query_filter.operator}")


def evaluate(documents: dict[str, dict[str, Any]], descriptor: QueryDescriptor) -> list[Record]:
    """Evaluate a descriptor over a mapping of document id to document data.

    Documents missing an ordering field sort after those that have it.
    """
    records = [
        {"id": doc_id, **copy.deepcopy(data)}
        for doc_id, data in documents.items()
        if all(matches(data, f) for f in descriptor.filters)
    ]

    for clause in reversed(descriptor.order_by):
        present = [r for r in records if get_field(r, clause.field) is not _MISSING]
        missing = [r for r in records if get_field(r, clause.field) is _MISSING]
        present.sort(
            key=lambda r: get_field(r, clause.field),
            reverse=clause.direction == SortDirection.DESCENDING,
        )
        records = present + missing

    if descriptor.limit is not None:
        records = records[: descriptor.limit]
    return records


@dataclass
class _Listener:
    descriptor: QueryDescriptor
    on_records: OnRecords
    on_error: OnError


class InMemoryCollectionStore:
    """Collection store held in process memory.

    Writes through :meth:`put` and :meth:`delete` notify every listener on
    the written path with its full current result set.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._listeners: dict[str, list[_Listener]] = {}
        self.fetch_count = 0

    def put(self, path: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or replace a document and notify listeners."""
        self._collections.setdefault(path, {})[doc_id] = copy.deepcopy(data)
        self._notify(path)

    def delete(self, path: str, doc_id: str) -> None:
        """Delete a document (if present) and notify listeners."""
        if self._collections.get(path, {}).pop(doc_id, None) is not None:
            self._notify(path)

    def listener_count(self, path: str | None = None) -> int:
        """Number of open push subscriptions, optionally for one path."""
        if path is not None:
            return len(self._listeners.get(path, []))
        return sum(len(listeners) for listeners in self._listeners.values())

    def fail_listeners(self, path: str, error: Exception) -> None:
        """Break every push subscription on a path with a transport error."""
        for listener in self._listeners.pop(path, []):
            listener.on_error(error)

    def _notify(self, path: str) -> None:
        documents = self._collections.get(path, {})
        for listener in list(self._listeners.get(path, [])):
            listener.on_records(evaluate(documents, listener.descriptor))

    async def fetch(self, descriptor: QueryDescriptor) -> list[Record]:
        self.fetch_count += 1
        return evaluate(self._collections.get(descriptor.path, {}), descriptor)

    async def listen(
        self,
        descriptor: QueryDescriptor,
        on_records: OnRecords,
        on_error: OnError,
    ) -> Unsubscribe:
        listener = _Listener(descriptor, on_records, on_error)
        listeners = self._listeners.setdefault(descriptor.path, [])
        listeners.append(listener)
        detail_logger.debug(f"Listener added on '{descriptor.path}'")

        # Initial state is delivered on the next loop iteration, like a remote store
        def _deliver_initial() -> None:
            if listener in self._listeners.get(descriptor.path, []):
                on_records(
                    evaluate(self._collections.get(descriptor.path, {}), descriptor)
                )

        asyncio.get_running_loop().call_soon(_deliver_initial)

        def unsubscribe() -> None:
            current = self._listeners.get(descriptor.path, [])
            if listener in current:
                current.remove(listener)
                detail_logger.debug(f"Listener removed from '{descriptor.path}'")

        return unsubscribe
