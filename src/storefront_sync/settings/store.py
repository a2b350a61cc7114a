# SPDX-License-Identifier: MIT
"""Persistence for the cost-control settings singleton."""

import asyncio
import json
import sqlite3
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from ..constants import SETTINGS_DOCUMENT_ID
from ..exceptions import SettingsReadError, SettingsWriteError
from ..logging_config import get_detail_logger


detail_logger = get_detail_logger()


@runtime_checkable
class SettingsStore(Protocol):
    """Read-one/write-one access to the cost-control settings document."""

    async def read(self) -> dict[str, Any] | None:
        """Return the stored settings document, or None if never saved."""
        ...

    async def write(self, data: dict[str, Any]) -> None:
        """Replace the stored settings document."""
        ...


class InMemorySettingsStore:
    """Settings store held in process memory."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = dict(data) if data is not None else None

    async def read(self) -> dict[str, Any] | None:
        return dict(self._data) if self._data is not None else None

    async def write(self, data: dict[str, Any]) -> None:
        self._data = dict(data)


def init_settings_database(db_path: Path) -> None:
    """Create the settings table if it does not exist.

    Args:
        db_path: Path to the SQLite database file
    """
    with sqlite3.connect(db_path) as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS settings (
                id TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
            """
        )


class SqliteSettingsStore:
    """Settings store persisted as one JSON row in a SQLite table.

    Blocking sqlite calls run in a worker thread so the event loop keeps
    serving channels while settings are read or saved.
    """

    def __init__(self, db_path: Path, document_id: str = SETTINGS_DOCUMENT_ID):
        self.db_path = db_path
        self.document_id = document_id
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        init_settings_database(self.db_path)

    def _read_sync(self) -> dict[str, Any] | None:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT data FROM settings WHERE id = ?", (self.document_id,)
            ).fetchone()
        if row is None:
            detail_logger.debug(f"No settings document '{self.document_id}' stored")
            return None
        data = json.loads(row[0])
        if not isinstance(data, dict):
            raise ValueError("Settings document is not a JSON object")
        return data

    def _write_sync(self, data: dict[str, Any]) -> None:
        payload = json.dumps(data, default=str)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO settings (id, data, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                """,
                (self.document_id, payload),
            )
            conn.commit()
        detail_logger.debug(f"Stored settings document '{self.document_id}'")

    async def read(self) -> dict[str, Any] | None:
        try:
            return await asyncio.to_thread(self._read_sync)
        except (sqlite3.Error, ValueError) as e:
            raise SettingsReadError(
                f"Failed to read settings from {self.db_path}: {e}"
            ) from e

    async def write(self, data: dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(self._write_sync, data)
        except (sqlite3.Error, TypeError, ValueError) as e:
            raise SettingsWriteError(
                f"Failed to write settings to {self.db_path}: {e}"
            ) from e
