# SPDX-License-Identifier: MIT
"""Collection query building."""

from .builder import CollectionQueryBuilder
from .collections import CollectionSpec, OptionSpec, default_collection_specs


__all__ = [
    "CollectionQueryBuilder",
    "CollectionSpec",
    "OptionSpec",
    "default_collection_specs",
]
