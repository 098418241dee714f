"""Shared fixtures for the extraction tests."""

import asyncio
import threading
import time
from collections.abc import Generator
from contextlib import suppress

import pytest
from aiohttp import web

from tests.mock_server import (
    PRODUCTS,
    create_app,
    generate_catalog_html,
    generate_product_html,
)
from tests.utils import FakeFetcher, find_free_port


@pytest.fixture
def catalog_html() -> str:
    """Catalog page HTML.

    Returns:
        HTML string listing all Beetle Supply Co. products.
    """
    return generate_catalog_html()


@pytest.fixture
def fake_site() -> FakeFetcher:
    """In-memory copy of the mock catalog.

    Returns:
        FakeFetcher serving the catalog at https://shop.example.com/ and one
        page per product.
    """
    pages = {"https://shop.example.com/": generate_catalog_html()}
    for product in PRODUCTS:
        pages[f"https://shop.example.com/products/{product.sku}"] = (
            generate_product_html(product)
        )
    return FakeFetcher(pages)


# =============================================================================
# aiohttp test server fixtures
# =============================================================================


class AioHttpTestServer:
    """Wrapper to run aiohttp server in a background thread."""

    def __init__(self, app: web.Application, port: int) -> None:
        self.app = app
        self.port = port
        self.host = "127.0.0.1"
        self._loop: asyncio.AbstractEventLoop | None = None
        self._runner: web.AppRunner | None = None
        self._thread: threading.Thread | None = None

    @property
    def url(self) -> str:
        """Get the base URL of the server."""
        return f"http://{self.host}:{self.port}"

    def start(self) -> None:
        """Start the server in a background thread."""
        self._thread = threading.Thread(target=self._run_server, daemon=True)
        self._thread.start()
        # Give the server time to start
        time.sleep(0.1)

    def _run_server(self) -> None:
        """Run the server in an asyncio event loop."""
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)

        async def start() -> None:
            self._runner = web.AppRunner(self.app)
            await self._runner.setup()
            site = web.TCPSite(self._runner, self.host, self.port)
            await site.start()

        self._loop.run_until_complete(start())
        self._loop.run_forever()

    def stop(self) -> None:
        """Stop the server and clean up resources."""
        if self._loop and self._runner:

            async def cleanup() -> None:
                if self._runner is not None:
                    await self._runner.cleanup()

            future = asyncio.run_coroutine_threadsafe(cleanup(), self._loop)
            with suppress(Exception):
                future.result(timeout=2.0)

        if self._loop:
            self._loop.call_soon_threadsafe(self._loop.stop)

        if self._thread:
            self._thread.join(timeout=2.0)


@pytest.fixture
def catalog_server() -> Generator[AioHttpTestServer, None, None]:
    """Create and start an aiohttp test server running the catalog app.

    Yields:
        AioHttpTestServer instance with the catalog app running.
    """
    app = create_app()
    port = find_free_port()
    server = AioHttpTestServer(app, port)
    server.start()
    yield server
    server.stop()


@pytest.fixture
def server_url(catalog_server: AioHttpTestServer) -> str:
    """Get the base URL of the test server.

    Returns:
        The base URL string (e.g., "http://127.0.0.1:8080").
    """
    return catalog_server.url
