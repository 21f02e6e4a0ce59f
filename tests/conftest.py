"""
Pytest configuration and fixtures for asyncslot tests.
"""

from typing import Callable

import httpx
import pytest

from asyncslot.services.cache import CacheStore, reset_cache_store


@pytest.fixture(autouse=True)
def isolated_global_cache():
    """Every test starts with a fresh process-wide cache store."""
    reset_cache_store()
    yield
    reset_cache_store()


@pytest.fixture
def cache_store() -> CacheStore:
    """Private cache store for a single test."""
    return CacheStore(debug=True)


@pytest.fixture
def recorder():
    """Collects handler invocations as (name, value) pairs."""

    class Recorder:
        def __init__(self):
            self.events: list[tuple[str, object]] = []

        def __call__(self, name: str) -> Callable[[object], None]:
            def handler(value: object) -> None:
                self.events.append((name, value))

            return handler

        def values(self, name: str) -> list[object]:
            return [value for event, value in self.events if event == name]

    return Recorder()


@pytest.fixture
async def mock_http():
    """
    Build an httpx.AsyncClient backed by a MockTransport.

    The returned factory takes a handler(request) -> httpx.Response and
    records every request in `factory.requests`.
    """
    clients: list[httpx.AsyncClient] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        def recording(request: httpx.Request) -> httpx.Response:
            factory.requests.append(request)
            return handler(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(recording))
        clients.append(client)
        return client

    factory.requests = []
    yield factory
    for client in clients:
        await client.aclose()
