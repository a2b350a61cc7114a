# SPDX-License-Identifier: MIT
"""Collection store adapters."""

from .http import HttpCollectionStore
from .memory import InMemoryCollectionStore
from .protocols import CollectionStore, OnError, OnRecords, Unsubscribe


__all__ = [
    "CollectionStore",
    "HttpCollectionStore",
    "InMemoryCollectionStore",
    "OnError",
    "OnRecords",
    "Unsubscribe",
]
