# SPDX-License-Identifier: MIT
"""Cost-control configuration: settings persistence and the push/poll accessor."""

from .cost_control import CostControl
from .store import (
    InMemorySettingsStore,
    SettingsStore,
    SqliteSettingsStore,
    init_settings_database,
)


__all__ = [
    "CostControl",
    "InMemorySettingsStore",
    "SettingsStore",
    "SqliteSettingsStore",
    "init_settings_database",
]
