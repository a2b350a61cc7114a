# SPDX-License-Identifier: MIT
"""Query definitions for the storefront collections.

Each logical collection maps its snake_case options onto document fields
in the store. Document fields keep the store's camelCase names.
"""

from dataclasses import dataclass, field
from typing import Any

from ..constants import DEFAULT_ORDER_FIELD
from ..enums import ClientFilter, FilterOperator, SortDirection
from ..models import OrderClause, QueryFilter


@dataclass(frozen=True)
class OptionSpec:
    """How one consumer option turns into a query clause.

    Attributes:
        field: Document field the option filters on
        operator: Comparison operator for the filter
        switch: Option is an on/off flag; when truthy it filters ``field == True``
        client_filter: Option enables a post-query predicate instead of a filter
        fallback: Filter applied when the option is absent
        excludes: Options ignored when this one is present
        ignore_values: Values that mean "no filter" for this option
    """

    field: str | None = None
    operator: FilterOperator = FilterOperator.EQUAL
    switch: bool = False
    client_filter: ClientFilter | None = None
    fallback: QueryFilter | None = None
    excludes: tuple[str, ...] = ()
    ignore_values: tuple[Any, ...] = ()


def _newest_first(order_field: str = DEFAULT_ORDER_FIELD) -> tuple[OrderClause, ...]:
    return (OrderClause(field=order_field, direction=SortDirection.DESCENDING),)


def _by_name() -> tuple[OrderClause, ...]:
    return (OrderClause(field="name", direction=SortDirection.ASCENDING),)


@dataclass(frozen=True)
class CollectionSpec:
    """Query definition for one logical collection."""

    name: str
    path: str
    options: dict[str, OptionSpec] = field(default_factory=dict)
    fixed_filters: tuple[QueryFilter, ...] = ()
    order_by: tuple[OrderClause, ...] = field(default_factory=_newest_first)


def _eq(field_name: str) -> OptionSpec:
    return OptionSpec(field=field_name)


def _item_spec(name: str, item_type: str) -> CollectionSpec:
    return CollectionSpec(
        name=name,
        path="items",
        fixed_filters=(QueryFilter(field="type", value=item_type),),
        options={
            "business_id": _eq("businessId"),
            "status": _eq("status"),
            "category_id": OptionSpec(
                field="categoryIds", operator=FilterOperator.ARRAY_CONTAINS
            ),
            "featured": _eq("isFeatured"),
        },
    )


def default_collection_specs() -> list[CollectionSpec]:
    """Query definitions for every collection the dashboard synchronizes."""
    return [
        _item_spec("products", "product"),
        _item_spec("services", "service"),
        CollectionSpec(
            name="orders",
            path="orders",
            options={
                "customer_id": _eq("customerId"),
                "customer_email": _eq("customerEmail"),
                "status": _eq("status"),
            },
        ),
        CollectionSpec(
            name="bookings",
            path="bookings",
            options={
                "customer_id": _eq("customerId"),
                "customer_email": _eq("customerEmail"),
                "service_id": _eq("serviceId"),
                "status": _eq("status"),
            },
        ),
        CollectionSpec(
            name="customers",
            path="users",
            fixed_filters=(QueryFilter(field="role", value="customer"),),
        ),
        CollectionSpec(
            name="staff",
            path="users",
            options={
                "role": OptionSpec(
                    field="role",
                    fallback=QueryFilter(
                        field="role",
                        operator=FilterOperator.IN,
                        value=["admin", "staff"],
                    ),
                ),
            },
        ),
        CollectionSpec(
            name="notifications",
            path="notifications",
            options={
                "user_id": OptionSpec(field="recipient.userId", excludes=("email",)),
                "email": _eq("recipient.email"),
                "unread_only": OptionSpec(client_filter=ClientFilter.UNREAD),
            },
        ),
        CollectionSpec(
            name="ledger",
            path="ledger",
            options={
                "entry_type": _eq("entryType"),
                "status": _eq("status"),
                "order_id": _eq("orderId"),
                "booking_id": _eq("bookingId"),
                "payment_id": _eq("paymentId"),
            },
        ),
        CollectionSpec(
            name="payments",
            path="payments",
            options={
                "status": _eq("status"),
                "order_id": _eq("orderId"),
                "booking_id": _eq("bookingId"),
                "business_id": _eq("businessId"),
            },
        ),
        CollectionSpec(name="businesses", path="business"),
        CollectionSpec(
            name="policies",
            path="policies",
            options={
                "type": _eq("type"),
                "active_only": OptionSpec(field="isActive", switch=True),
            },
            order_by=_newest_first("version"),
        ),
        CollectionSpec(
            name="reports",
            path="reports",
            options={
                "type": _eq("type"),
                "category": _eq("category"),
                "status": _eq("status"),
                "business_id": _eq("businessId"),
            },
            order_by=_newest_first("generatedAt"),
        ),
        CollectionSpec(
            name="categories",
            path="categories",
            options={
                "type": OptionSpec(field="type", ignore_values=("both",)),
                "business_id": _eq("businessId"),
            },
            order_by=_by_name(),
        ),
        CollectionSpec(
            name="promotions",
            path="promotions",
            options={
                "status": _eq("status"),
                "business_id": _eq("businessId"),
            },
            order_by=_newest_first("startDate"),
        ),
        CollectionSpec(
            name="reviews",
            path="reviews",
            options={
                "item_id": _eq("itemId"),
                "user_id": _eq("userId"),
                "business_id": _eq("businessId"),
            },
        ),
        CollectionSpec(
            name="delivery_providers",
            path="delivery_providers",
            options={
                "business_id": _eq("businessId"),
                "is_active": _eq("isActive"),
            },
            order_by=_by_name(),
        ),
    ]
