# SPDX-License-Identifier: MIT
"""Core data models for the storefront sync layer."""

import json
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    DEFAULT_POLLING_INTERVAL_SECONDS,
    DEFAULT_PUSH_COLLECTIONS,
    MAX_POLLING_INTERVAL_SECONDS,
    MIN_POLLING_INTERVAL_SECONDS,
)
from .enums import ChannelKind, ClientFilter, FilterOperator, SortDirection


Record = dict[str, Any]


def clamp_polling_interval(value: Any) -> int:
    """Coerce a polling interval into the supported range.

    Args:
        value: Raw interval in seconds (int, float or numeric string)

    Returns:
        Interval clamped to [MIN_POLLING_INTERVAL_SECONDS, MAX_POLLING_INTERVAL_SECONDS];
        the default interval if the value is not numeric
    """
    try:
        interval = int(value)
    except (TypeError, ValueError):
        return DEFAULT_POLLING_INTERVAL_SECONDS
    return max(MIN_POLLING_INTERVAL_SECONDS, min(MAX_POLLING_INTERVAL_SECONDS, interval))


class CostControlSettings(BaseModel):
    """Operator-facing settings trading data freshness for backend read volume."""

    enabled: bool = Field(True, description="Global switch for live push updates")
    polling_interval_seconds: int = Field(
        DEFAULT_POLLING_INTERVAL_SECONDS,
        description="Polling interval for collections without push updates (10-300)",
    )
    collections: dict[str, bool] = Field(
        default_factory=dict, description="Per-collection push switches"
    )
    updated_at: datetime | None = Field(None, description="Last settings save")

    @field_validator("polling_interval_seconds", mode="before")
    @classmethod
    def _clamp_interval(cls, value: Any) -> int:
        return clamp_polling_interval(value)

    @classmethod
    def with_defaults(cls) -> "CostControlSettings":
        """Settings as written by the first save."""
        return cls(collections=dict(DEFAULT_PUSH_COLLECTIONS))

    def is_push_enabled(self, collection: str) -> bool:
        """Push is off only when disabled globally or explicitly for the collection."""
        if not self.enabled:
            return False
        return self.collections.get(collection, True)


class QueryFilter(BaseModel):
    """A single server-side filter clause."""

    model_config = ConfigDict(frozen=True)

    field: str
    operator: FilterOperator = FilterOperator.EQUAL
    value: Any

    @field_validator("value", mode="before")
    @classmethod
    def _freeze_sequences(cls, value: Any) -> Any:
        if isinstance(value, (set, frozenset)):
            return tuple(sorted(value, key=str))
        if isinstance(value, list):
            return tuple(value)
        return value

    def sort_key(self) -> tuple[str, str, str]:
        return (
            self.field,
            self.operator.value,
            json.dumps(self.value, sort_keys=True, default=str),
        )


class OrderClause(BaseModel):
    """A single ordering clause."""

    model_config = ConfigDict(frozen=True)

    field: str
    direction: SortDirection = SortDirection.DESCENDING


class QueryDescriptor(BaseModel):
    """Immutable description of a query against one collection.

    Filters are stored sorted, so two descriptors built from the same
    options in a different order compare equal and share a sync key.
    Equality and hashing go through the sync key, which keeps JSON types
    apart: a filter on ``1`` and one on ``True`` are different queries.
    """

    model_config = ConfigDict(frozen=True)

    collection: str = Field(..., description="Logical collection name")
    path: str = Field(..., description="Collection path in the document store")
    filters: tuple[QueryFilter, ...] = ()
    order_by: tuple[OrderClause, ...] = ()
    limit: int | None = Field(None, gt=0, description="Optional result cap")
    client_filters: tuple[ClientFilter, ...] = ()

    @field_validator("filters")
    @classmethod
    def _normalize_filters(
        cls, filters: tuple[QueryFilter, ...]
    ) -> tuple[QueryFilter, ...]:
        return tuple(sorted(filters, key=QueryFilter.sort_key))

    @field_validator("client_filters")
    @classmethod
    def _normalize_client_filters(
        cls, client_filters: tuple[ClientFilter, ...]
    ) -> tuple[ClientFilter, ...]:
        return tuple(sorted(set(client_filters), key=lambda f: f.value))

    @property
    def sync_key(self) -> str:
        """Deterministic synchronization key for this descriptor."""
        payload = self.model_dump(mode="json", exclude={"collection"})
        canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
        return f"{self.collection}:{canonical}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryDescriptor):
            return NotImplemented
        return self.sync_key == other.sync_key

    def __hash__(self) -> int:
        return hash(self.sync_key)


class Snapshot(BaseModel):
    """The complete result set for a sync key at one moment.

    A snapshot is never a diff: each one replaces the previous snapshot
    for its key wholesale.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    collection: str
    records: tuple[Record, ...] = ()
    channel_kind: ChannelKind
    produced_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
