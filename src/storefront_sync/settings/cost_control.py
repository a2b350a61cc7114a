# SPDX-License-Identifier: MIT
"""Accessor for the cost-control configuration."""

import time
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from ..constants import DEFAULT_POLLING_INTERVAL_SECONDS
from ..exceptions import SettingsReadError, SettingsWriteError
from ..logging_config import get_detail_logger, get_status_logger
from ..models import CostControlSettings
from .store import SettingsStore


class CostControl:
    """Answers push-or-poll questions from the stored cost-control settings.

    Reads fail open: if the settings document cannot be read, every
    collection is reported as push-enabled and the default polling interval
    applies. A missing document (settings never saved) is read the same way,
    since no collection has been explicitly switched to polling yet.
    """

    def __init__(self, store: SettingsStore, cache_ttl_seconds: float = 0.0):
        """Initialize the accessor.

        Args:
            store: Settings store holding the singleton document
            cache_ttl_seconds: Serve repeated reads from memory for this long;
                0 reads the store on every call
        """
        self.store = store
        self.cache_ttl_seconds = cache_ttl_seconds
        self.detail_logger = get_detail_logger()
        self.status_logger = get_status_logger()
        self._cached: CostControlSettings | None = None
        self._cached_until = 0.0

    async def _load(self) -> CostControlSettings | None:
        if self.cache_ttl_seconds > 0 and time.monotonic() < self._cached_until:
            return self._cached

        data = await self.store.read()
        settings = None if data is None else CostControlSettings.model_validate(data)

        if self.cache_ttl_seconds > 0:
            self._cached = settings
            self._cached_until = time.monotonic() + self.cache_ttl_seconds
        return settings

    def invalidate(self) -> None:
        """Drop any in-process copy of the settings."""
        self._cached = None
        self._cached_until = 0.0

    async def is_push_enabled(self, collection: str) -> bool:
        """Check whether a collection should use live push updates.

        Args:
            collection: Logical collection name

        Returns:
            False only if push is disabled globally or for this collection
        """
        try:
            settings = await self._load()
        except Exception as e:
            self.status_logger.warning(
                f"Cost-control settings unreadable, using push updates for '{collection}': {e}"
            )
            self.detail_logger.exception("Settings read failed in is_push_enabled")
            return True

        if settings is None:
            self.detail_logger.debug(
                f"No cost-control settings saved, push enabled for '{collection}'"
            )
            return True

        enabled = settings.is_push_enabled(collection)
        self.detail_logger.debug(f"Push for '{collection}': {enabled}")
        return enabled

    async def get_polling_interval_seconds(self) -> int:
        """Get the polling interval, clamped to the supported range."""
        try:
            settings = await self._load()
        except Exception as e:
            self.status_logger.warning(
                f"Cost-control settings unreadable, polling every "
                f"{DEFAULT_POLLING_INTERVAL_SECONDS}s: {e}"
            )
            self.detail_logger.exception(
                "Settings read failed in get_polling_interval_seconds"
            )
            return DEFAULT_POLLING_INTERVAL_SECONDS

        if settings is None:
            return DEFAULT_POLLING_INTERVAL_SECONDS
        return settings.polling_interval_seconds

    async def get_settings(self) -> CostControlSettings:
        """Get the effective settings.

        Raises:
            SettingsReadError: If the stored document cannot be read or parsed
        """
        try:
            settings = await self._load()
        except ValidationError as e:
            raise SettingsReadError(f"Stored settings are invalid: {e}") from e
        return settings if settings is not None else CostControlSettings()

    async def update_settings(
        self,
        *,
        enabled: bool | None = None,
        polling_interval_seconds: int | None = None,
        collections: dict[str, bool] | None = None,
    ) -> CostControlSettings:
        """Apply an operator change to the settings document.

        The first save creates the document from the cost-optimized defaults.
        Per-collection switches are merged into the stored map; the interval
        is clamped to the supported range.

        Args:
            enabled: New global push switch
            polling_interval_seconds: New polling interval
            collections: Per-collection push switches to change

        Returns:
            The settings as saved

        Raises:
            SettingsWriteError: If the current document cannot be read or the
                new one cannot be saved
        """
        try:
            data = await self.store.read()
            current = (
                CostControlSettings.with_defaults()
                if data is None
                else CostControlSettings.model_validate(data)
            )
        except (SettingsReadError, ValidationError) as e:
            raise SettingsWriteError(
                f"Cannot update settings, current document unreadable: {e}"
            ) from e

        updated_data: dict[str, Any] = current.model_dump()
        if enabled is not None:
            updated_data["enabled"] = enabled
        if polling_interval_seconds is not None:
            updated_data["polling_interval_seconds"] = polling_interval_seconds
        if collections:
            updated_data["collections"] = {**current.collections, **collections}
        updated_data["updated_at"] = datetime.now(timezone.utc)

        updated = CostControlSettings.model_validate(updated_data)

        await self.store.write(updated.model_dump(mode="json"))
        self.invalidate()

        self.status_logger.info(
            f"Cost-control settings saved: push={'on' if updated.enabled else 'off'}, "
            f"interval={updated.polling_interval_seconds}s"
        )
        return updated
