# SPDX-License-Identifier: MIT
"""Translates consumer options into canonical query descriptors."""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from ..enums import ClientFilter
from ..exceptions import UnknownCollectionError
from ..logging_config import get_detail_logger
from ..models import QueryDescriptor, QueryFilter
from .collections import CollectionSpec, default_collection_specs


detail_logger = get_detail_logger()

LIMIT_OPTION = "limit"


def _is_present(value: Any) -> bool:
    """Absent options (None or empty string) never produce a filter."""
    return value is not None and value != ""


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def _validate_limit(collection: str, limit: Any) -> int | None:
    if limit is None:
        return None
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValueError(
            f"limit for '{collection}' must be a positive integer, got {limit!r}"
        )
    return limit


class CollectionQueryBuilder:
    """Registry of collection query definitions with a pure ``build``."""

    def __init__(self, specs: list[CollectionSpec] | None = None) -> None:
        self._specs: dict[str, CollectionSpec] = {}
        for spec in default_collection_specs() if specs is None else specs:
            self.register(spec)

    def register(self, spec: CollectionSpec) -> None:
        """Register or replace the query definition for a collection.

        Args:
            spec: Query definition; ``spec.name`` is the logical collection name
        """
        if LIMIT_OPTION in spec.options:
            raise ValueError(f"'{LIMIT_OPTION}' is reserved and cannot be an option")
        self._specs[spec.name] = spec

    def get_spec(self, collection: str) -> CollectionSpec:
        spec = self._specs.get(collection)
        if spec is None:
            raise UnknownCollectionError(collection)
        return spec

    def get_collection_names(self) -> list[str]:
        """Get names of all registered collections."""
        return list(self._specs.keys())

    def build(
        self, collection: str, options: Mapping[str, Any] | None = None
    ) -> QueryDescriptor:
        """Build the query descriptor for a collection.

        The same collection and options always give an equal descriptor,
        whatever order the options were supplied in.

        Args:
            collection: Logical collection name
            options: Consumer options; absent (None or empty) values are ignored

        Returns:
            Immutable query descriptor

        Raises:
            UnknownCollectionError: If the collection has no query definition
            ValueError: If an option is not supported or the limit is invalid
        """
        spec = self.get_spec(collection)
        options = dict(options or {})
        limit = _validate_limit(collection, options.pop(LIMIT_OPTION, None))

        unknown = sorted(set(options) - set(spec.options))
        if unknown:
            raise ValueError(
                f"Unsupported options for '{collection}': {', '.join(unknown)}"
            )

        present = {
            name
            for name, value in options.items()
            if _is_present(value)
            and _plain(value) not in spec.options[name].ignore_values
        }
        excluded = {
            name for present_name in present for name in spec.options[present_name].excludes
        }

        filters: list[QueryFilter] = list(spec.fixed_filters)
        client_filters: list[ClientFilter] = []

        for name, option in spec.options.items():
            if name not in present:
                if option.fallback is not None:
                    filters.append(option.fallback)
                continue
            if name in excluded:
                continue

            value = _plain(options[name])
            if option.client_filter is not None:
                if value:
                    client_filters.append(option.client_filter)
            elif option.switch:
                if value:
                    filters.append(
                        QueryFilter(field=option.field, operator=option.operator, value=True)
                    )
            else:
                filters.append(
                    QueryFilter(field=option.field, operator=option.operator, value=value)
                )

        descriptor = QueryDescriptor(
            collection=spec.name,
            path=spec.path,
            filters=tuple(filters),
            order_by=spec.order_by,
            limit=limit,
            client_filters=tuple(client_filters),
        )
        detail_logger.debug(f"Built query for '{collection}': {descriptor.sync_key}")
        return descriptor
