# SPDX-License-Identifier: MIT
"""Integration tests for the HTTP collection store against a local aiohttp server."""

import asyncio

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from storefront_sync.exceptions import StoreConnectionError, StoreQueryError
from storefront_sync.query import CollectionQueryBuilder, CollectionSpec
from storefront_sync.settings import CostControl, InMemorySettingsStore
from storefront_sync.stores import CollectionStore, HttpCollectionStore
from storefront_sync.sync import PollChannel, PushChannel, SyncStrategySelector


pytestmark = pytest.mark.integration

ORDERS = [
    {"id": "o2", "customerId": "c1", "createdAt": 2},
    {"id": "o1", "customerId": "c1", "createdAt": 1},
]


def _spec(path):
    return CollectionSpec(name=path, path=path)


async def wait_until(predicate, timeout=3.0):
    """Poll a condition on the event loop until it holds or time runs out."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


def make_app(state):
    """Minimal collection store service."""

    async def query(request):
        path = request.match_info["path"]
        state["queries"].append((path, await request.json()))
        if path == "broken":
            return web.json_response({"error": "backend down"}, status=500)
        if path == "garbage":
            return web.json_response({"rows": []})
        return web.json_response({"records": ORDERS})

    async def listen(request):
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        state["listen_descriptors"].append(await ws.receive_json())
        await ws.send_json({"records": ORDERS})

        if request.match_info["path"] == "denied":
            await ws.send_json({"error": "permission denied"})
            await ws.close()
            return ws

        state["sockets"].append(ws)
        async for _message in ws:
            pass
        state["closed"] += 1
        return ws

    app = web.Application()
    app.router.add_post("/collections/{path}/query", query)
    app.router.add_get("/collections/{path}/listen", listen)
    return app


@pytest_asyncio.fixture
async def store_server():
    """Running store service and its recorded state."""
    state = {"queries": [], "listen_descriptors": [], "sockets": [], "closed": 0}
    server = TestServer(make_app(state))
    await server.start_server()
    yield str(server.make_url("")), state
    await server.close()


@pytest_asyncio.fixture
async def http_store(store_server):
    """HTTP store client bound to the local service."""
    base_url, _ = store_server
    async with HttpCollectionStore(base_url, timeout_seconds=5) as store:
        yield store


class TestFetch:
    """Point-in-time queries over HTTP."""

    @pytest.mark.asyncio
    async def test_fetch_posts_descriptor(self, http_store, store_server):
        """Test the descriptor is posted and records are returned."""
        _, state = store_server
        descriptor = CollectionQueryBuilder().build("orders", {"customer_id": "c1", "limit": 10})

        records = await http_store.fetch(descriptor)

        assert [r["id"] for r in records] == ["o2", "o1"]
        path, body = state["queries"][0]
        assert path == "orders"
        assert body["limit"] == 10
        assert body["filters"] == [
            {"field": "customerId", "operator": "==", "value": "c1"}
        ]

    @pytest.mark.asyncio
    async def test_error_status(self, http_store):
        """Test non-200 responses raise StoreQueryError with the status."""
        builder = CollectionQueryBuilder(specs=[])
        builder.register(_spec("broken"))

        with pytest.raises(StoreQueryError) as exc_info:
            await http_store.fetch(builder.build("broken"))

        assert exc_info.value.status == 500

    @pytest.mark.asyncio
    async def test_malformed_response(self, http_store):
        """Test a response without a records list raises StoreQueryError."""
        builder = CollectionQueryBuilder(specs=[])
        builder.register(_spec("garbage"))

        with pytest.raises(StoreQueryError, match="Malformed"):
            await http_store.fetch(builder.build("garbage"))

    @pytest.mark.asyncio
    async def test_unreachable_store(self):
        """Test connection failures raise StoreConnectionError."""
        descriptor = CollectionQueryBuilder().build("orders")

        async with HttpCollectionStore("http://127.0.0.1:1", timeout_seconds=2) as store:
            with pytest.raises(StoreConnectionError):
                await store.fetch(descriptor)

    def test_satisfies_protocol(self):
        """Test the HTTP store satisfies the CollectionStore protocol."""
        assert isinstance(HttpCollectionStore("http://localhost"), CollectionStore)


class TestListen:
    """Push subscriptions over websockets."""

    @pytest.mark.asyncio
    async def test_stream_and_unsubscribe(self, http_store, store_server):
        """Test pushed result sets arrive until unsubscribed."""
        _, state = store_server
        batches = []
        descriptor = CollectionQueryBuilder().build("orders", {"customer_id": "c1"})

        unsubscribe = await http_store.listen(descriptor, batches.append, pytest.fail)
        await wait_until(lambda: len(batches) == 1 and state["sockets"])

        await state["sockets"][0].send_json({"records": [{"id": "o3"}]})
        await wait_until(lambda: len(batches) == 2)

        unsubscribe()
        unsubscribe()
        await wait_until(lambda: state["closed"] == 1)

        assert state["listen_descriptors"][0]["path"] == "orders"
        assert [r["id"] for r in batches[1]] == ["o3"]

    @pytest.mark.asyncio
    async def test_error_message(self, http_store):
        """Test an error message ends the subscription through on_error."""
        builder = CollectionQueryBuilder(specs=[])
        builder.register(_spec("denied"))
        batches, errors = [], []

        await http_store.listen(builder.build("denied"), batches.append, errors.append)
        await wait_until(lambda: errors)

        assert len(batches) == 1
        assert isinstance(errors[0], StoreQueryError)
        assert "permission denied" in str(errors[0])

    @pytest.mark.asyncio
    async def test_server_close_is_an_error(self, http_store, store_server):
        """Test the store closing the stream is reported as a transport error."""
        _, state = store_server
        errors = []

        await http_store.listen(
            CollectionQueryBuilder().build("orders"), lambda r: None, errors.append
        )
        await wait_until(lambda: state["sockets"])
        await state["sockets"][0].close()
        await wait_until(lambda: errors)

        assert isinstance(errors[0], StoreConnectionError)


class TestSelectorOverHttp:
    """The full sync stack against the HTTP store."""

    @pytest.mark.asyncio
    async def test_push_and_poll(self, http_store, store_server):
        """Test orders are pushed and products are polled through one selector."""
        _, state = store_server
        settings = InMemorySettingsStore({"collections": {"products": False}})
        selector = SyncStrategySelector(
            CollectionQueryBuilder(), CostControl(settings), http_store
        )
        orders_seen, products_seen = [], []

        orders = await selector.open_or_attach("orders", {"customer_id": "c1"}, orders_seen.append)
        products = await selector.open_or_attach("products", {}, products_seen.append)

        assert isinstance(selector.registry.get(orders.key).channel, PushChannel)
        assert isinstance(selector.registry.get(products.key).channel, PollChannel)
        assert len(products_seen) == 1

        await wait_until(lambda: orders_seen)
        assert [r["id"] for r in orders_seen[0].records] == ["o2", "o1"]

        orders()
        products()
        await wait_until(lambda: state["closed"] == 1)
        assert selector.active_keys() == []
        await selector.close_all()
