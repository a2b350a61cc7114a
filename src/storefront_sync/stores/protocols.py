# SPDX-License-Identifier: MIT
"""Protocol definitions for collection store adapters."""

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable


if TYPE_CHECKING:
    from ..models import QueryDescriptor, Record


OnRecords = Callable[[list["Record"]], None]
OnError = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class CollectionStore(Protocol):
    """Protocol for the document store the sync layer reads from.

    The store answers two kinds of request for a query descriptor: a
    point-in-time query, and a push subscription that reports the current
    matching record set on every change.

    Implementations:
    - InMemoryCollectionStore (stores/memory.py)
    - HttpCollectionStore (stores/http.py)
    """

    async def fetch(self, descriptor: "QueryDescriptor") -> list["Record"]:
        """Run the query once.

        Args:
            descriptor: Query to execute

        Returns:
            The matching records, ordered and capped as described

        Raises:
            StoreError: If the store cannot answer
        """
        ...

    async def listen(
        self,
        descriptor: "QueryDescriptor",
        on_records: OnRecords,
        on_error: OnError,
    ) -> Unsubscribe:
        """Open a push subscription for the query.

        ``on_records`` receives the full current result set after every
        change (including the initial state). ``on_error`` is called at most
        once when the subscription breaks; no records follow it.

        Args:
            descriptor: Query to subscribe to
            on_records: Callback for each result set
            on_error: Callback for a terminal transport error

        Returns:
            Callable that closes the subscription; safe to call twice

        Raises:
            StoreError: If the subscription cannot be opened
        """
        ...
