# SPDX-License-Identifier: MIT
"""Storefront sync - cost-aware push/poll synchronization of dashboard collections."""

from importlib.metadata import PackageNotFoundError, version

from .query import CollectionQueryBuilder
from .settings import CostControl
from .sync import CacheBridge, SyncStrategySelector


__all__: list[str] = [
    "CacheBridge",
    "CollectionQueryBuilder",
    "CostControl",
    "SyncStrategySelector",
    "__version__",
]

# Get version from installed package metadata
__version__: str
try:
    __version__ = version("storefront-sync")
except PackageNotFoundError:
    # Package is not installed, use development fallback
    __version__ = "development"
