# SPDX-License-Identifier: MIT
"""Subscription management: channel selection, sharing and caching."""

from .cache_bridge import CacheBridge
from .channels import PollChannel, PushChannel, SyncChannel, apply_client_filters
from .registry import DetachHandle, SubscriptionEntry, SubscriptionRegistry
from .selector import SyncStrategySelector


__all__ = [
    "CacheBridge",
    "DetachHandle",
    "PollChannel",
    "PushChannel",
    "SubscriptionEntry",
    "SubscriptionRegistry",
    "SyncChannel",
    "SyncStrategySelector",
    "apply_client_filters",
]
