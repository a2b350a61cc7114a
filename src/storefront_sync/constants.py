# SPDX-License-Identifier: MIT
"""Constants used throughout the storefront sync layer.

This module centralizes:

- **Polling bounds**: the range the operator-facing polling interval is clamped to
- **Push defaults**: which collections get live push updates on a fresh settings record
- **Query defaults**: default ordering field and the per-collection exceptions
- **Local config defaults**: paths and timeouts for the store adapters
"""

# Polling interval bounds (seconds)
MIN_POLLING_INTERVAL_SECONDS: int = 10
MAX_POLLING_INTERVAL_SECONDS: int = 300
DEFAULT_POLLING_INTERVAL_SECONDS: int = 30

# Push defaults written with the first settings save.
# Only collections an admin needs live are pushed; the rest are polled.
DEFAULT_PUSH_COLLECTIONS: dict[str, bool] = {
    "orders": True,
    "bookings": True,
    "products": False,
    "services": False,
    "customers": False,
    "notifications": True,
    "payments": True,
    "ledger": False,
    "categories": False,
    "delivery_providers": False,
    "reviews": False,
    "promotions": False,
    "policies": False,
    "staff": False,
    "businesses": False,
    "reports": False,
}

# Query defaults
DEFAULT_ORDER_FIELD: str = "createdAt"

# Settings persistence
SETTINGS_DOCUMENT_ID: str = "cost_control"

# Local config defaults
DEFAULT_STORE_TIMEOUT_SECONDS: int = 30
DEFAULT_SETTINGS_CACHE_TTL_SECONDS: float = 0.0
