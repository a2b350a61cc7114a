# SPDX-License-Identifier: MIT
"""Standard exceptions for the storefront sync layer."""


class SyncError(Exception):
    """Base class for all sync-layer exceptions."""

    def __init__(self, message: str, collection: str | None = None) -> None:
        self.collection = collection
        super().__init__(message)


class StoreError(SyncError):
    """Raised when the collection store cannot serve a request."""

    pass


class StoreConnectionError(StoreError):
    """Raised when the collection store cannot be reached."""

    pass


class StoreQueryError(StoreError):
    """Raised when the collection store rejects or fails a query."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        collection: str | None = None,
    ) -> None:
        self.status = status
        msg = f"{message} (status {status})" if status is not None else message
        super().__init__(msg, collection)


class SettingsReadError(SyncError):
    """Raised when the cost-control settings record cannot be read."""

    pass


class SettingsWriteError(SyncError):
    """Raised when the cost-control settings record cannot be saved."""

    pass


class UnknownCollectionError(SyncError, ValueError):
    """Raised when a query is built for a collection with no definition."""

    def __init__(self, collection: str) -> None:
        super().__init__(f"Unknown collection '{collection}'", collection)
