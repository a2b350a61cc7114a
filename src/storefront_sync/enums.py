# SPDX-License-Identifier: MIT
"""Enums for the storefront sync layer."""

from enum import Enum


class ChannelKind(str, Enum):
    """How a sync channel keeps its key fresh."""

    PUSH = "push"
    POLL = "poll"


class ChannelState(str, Enum):
    """Lifecycle states of a sync channel."""

    IDLE = "idle"
    RUNNING = "running"
    FAILED = "failed"
    STOPPED = "stopped"


class FilterOperator(str, Enum):
    """Comparison operators supported by the collection store."""

    EQUAL = "=="
    IN = "in"
    ARRAY_CONTAINS = "array-contains"


class SortDirection(str, Enum):
    """Sort directions for query ordering."""

    ASCENDING = "asc"
    DESCENDING = "desc"


class ClientFilter(str, Enum):
    """Predicates applied to a result set after the store returns it."""

    UNREAD = "unread"
