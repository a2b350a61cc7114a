# SPDX-License-Identifier: MIT
"""HTTP/websocket client for a remote collection store."""

import asyncio
from typing import Any

import aiohttp

from ..constants import DEFAULT_STORE_TIMEOUT_SECONDS
from ..exceptions import StoreConnectionError, StoreQueryError
from ..logging_config import get_detail_logger
from ..models import QueryDescriptor, Record
from .protocols import OnError, OnRecords, Unsubscribe


detail_logger = get_detail_logger()


def _parse_records(payload: Any, descriptor: QueryDescriptor) -> list[Record]:
    records = payload.get("records") if isinstance(payload, dict) else None
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise StoreQueryError(
            "Malformed response: expected a 'records' list",
            collection=descriptor.collection,
        )
    return [dict(r) for r in records]


class HttpCollectionStore:
    """Collection store reached over HTTP.

    Queries are posted to ``{base_url}/collections/{path}/query``. Push
    subscriptions use a websocket at ``{base_url}/collections/{path}/listen``:
    the client sends the descriptor once, then the server streams
    ``{"records": [...]}`` messages, or one ``{"error": "..."}`` message
    before closing.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = DEFAULT_STORE_TIMEOUT_SECONDS,
        headers: dict[str, str] | None = None,
    ):
        """Initialize the store client.

        Args:
            base_url: Root URL of the store service
            timeout_seconds: Timeout for queries and websocket handshakes
            headers: Extra headers sent with every request
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.headers = {"User-Agent": "storefront-sync/1.0", **(headers or {})}
        self.session: aiohttp.ClientSession | None = None
        self._listen_tasks: set[asyncio.Task[None]] = set()

    async def __aenter__(self) -> "HttpCollectionStore":
        """Async context manager entry."""
        self._ensure_session()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Cancel open subscriptions and close the HTTP session."""
        for task in list(self._listen_tasks):
            task.cancel()
        if self._listen_tasks:
            await asyncio.gather(*self._listen_tasks, return_exceptions=True)
        if self.session:
            await self.session.close()
            self.session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        # No total timeout on the session; it would cut long-lived websockets
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(
                    total=None, sock_connect=self.timeout_seconds
                ),
            )
        return self.session

    def _url(self, descriptor: QueryDescriptor, action: str) -> str:
        return f"{self.base_url}/collections/{descriptor.path}/{action}"

    async def fetch(self, descriptor: QueryDescriptor) -> list[Record]:
        session = self._ensure_session()
        url = self._url(descriptor, "query")

        try:
            async with session.post(
                url,
                json=descriptor.model_dump(mode="json"),
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                if response.status != 200:
                    raise StoreQueryError(
                        f"Query on '{descriptor.path}' failed",
                        status=response.status,
                        collection=descriptor.collection,
                    )
                payload = await response.json()
        except asyncio.TimeoutError as e:
            raise StoreConnectionError(
                f"Store query timed out after {self.timeout_seconds}s",
                collection=descriptor.collection,
            ) from e
        except aiohttp.ContentTypeError as e:
            raise StoreQueryError(
                f"Store returned a non-JSON response: {e}",
                collection=descriptor.collection,
            ) from e
        except aiohttp.ClientError as e:
            raise StoreConnectionError(
                f"Cannot reach store at {self.base_url}: {e}",
                collection=descriptor.collection,
            ) from e

        records = _parse_records(payload, descriptor)
        detail_logger.debug(
            f"Fetched {len(records)} records from '{descriptor.path}'"
        )
        return records

    async def listen(
        self,
        descriptor: QueryDescriptor,
        on_records: OnRecords,
        on_error: OnError,
    ) -> Unsubscribe:
        session = self._ensure_session()
        url = self._url(descriptor, "listen")

        try:
            ws = await asyncio.wait_for(
                session.ws_connect(url), timeout=self.timeout_seconds
            )
            await ws.send_json(descriptor.model_dump(mode="json"))
        except asyncio.TimeoutError as e:
            raise StoreConnectionError(
                f"Listen handshake timed out after {self.timeout_seconds}s",
                collection=descriptor.collection,
            ) from e
        except aiohttp.ClientError as e:
            raise StoreConnectionError(
                f"Cannot open listen stream at {url}: {e}",
                collection=descriptor.collection,
            ) from e

        task = asyncio.create_task(self._pump(ws, descriptor, on_records, on_error))
        self._listen_tasks.add(task)
        task.add_done_callback(self._listen_tasks.discard)
        detail_logger.debug(f"Listen stream opened on '{descriptor.path}'")

        def unsubscribe() -> None:
            if not task.done():
                task.cancel()

        return unsubscribe

    async def _pump(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        descriptor: QueryDescriptor,
        on_records: OnRecords,
        on_error: OnError,
    ) -> None:
        """Forward websocket messages until the stream ends or is cancelled."""
        try:
            async for message in ws:
                if message.type == aiohttp.WSMsgType.TEXT:
                    payload = message.json()
                    if isinstance(payload, dict) and "error" in payload:
                        on_error(
                            StoreQueryError(
                                str(payload["error"]), collection=descriptor.collection
                            )
                        )
                        return
                    on_records(_parse_records(payload, descriptor))
                elif message.type == aiohttp.WSMsgType.ERROR:
                    on_error(
                        StoreConnectionError(
                            f"Listen stream failed: {ws.exception()}",
                            collection=descriptor.collection,
                        )
                    )
                    return
            on_error(
                StoreConnectionError(
                    "Listen stream closed by store", collection=descriptor.collection
                )
            )
        except (ValueError, StoreQueryError, aiohttp.ClientError) as e:
            on_error(
                e
                if isinstance(e, StoreQueryError)
                else StoreConnectionError(
                    f"Listen stream failed: {e}", collection=descriptor.collection
                )
            )
        finally:
            await ws.close()
            detail_logger.debug(f"Listen stream closed on '{descriptor.path}'")
