"""
Test doubles and polling helpers shared across test modules.
"""

import asyncio
import json
from typing import AsyncIterator, Callable

import httpx

from asyncslot.services.stream import BaseChunkSource, StreamRequest


async def wait_until(
    predicate: Callable[[], bool],
    timeout: float = 2.0,
    interval: float = 0.005,
) -> None:
    """Poll predicate until it holds or fail after timeout seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


async def settle(rounds: int = 5) -> None:
    """Let already-scheduled tasks run a few steps."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ListChunkSource(BaseChunkSource):
    """Yields a fixed list of chunks; optionally raises after them."""

    def __init__(self, chunks: list[str], error: Exception | None = None):
        self.chunks = chunks
        self.error = error
        self.requests: list[StreamRequest] = []
        self.closed = False

    async def open(self, request: StreamRequest) -> AsyncIterator[str]:
        self.requests.append(request)
        try:
            for chunk in self.chunks:
                await asyncio.sleep(0)
                yield chunk
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


class GatedChunkSource(BaseChunkSource):
    """Yields the first chunk, then blocks until release() for the rest."""

    def __init__(self, chunks: list[str]):
        self.chunks = chunks
        self.gate = asyncio.Event()
        self.closed = False

    def release(self) -> None:
        self.gate.set()

    async def open(self, request: StreamRequest) -> AsyncIterator[str]:
        try:
            first, *rest = self.chunks
            yield first
            await self.gate.wait()
            for chunk in rest:
                yield chunk
        finally:
            self.closed = True


class Gate:
    """Operation whose calls block until released, returning a tagged value."""

    def __init__(self, stubborn: bool = False):
        self.stubborn = stubborn
        self.events: dict[str, asyncio.Event] = {}
        self.calls: list[str] = []

    def release(self, tag: str) -> None:
        self.events.setdefault(tag, asyncio.Event()).set()

    async def __call__(self, tag: str) -> str:
        self.calls.append(tag)
        event = self.events.setdefault(tag, asyncio.Event())
        while not event.is_set():
            try:
                await event.wait()
            except asyncio.CancelledError:
                if not self.stubborn:
                    raise
        if tag.startswith("fail"):
            raise RuntimeError(tag)
        return f"result:{tag}"


class Flaky:
    """Operation failing a fixed number of times before succeeding."""

    def __init__(self, failures: int, result: Callable[..., object] = lambda *a: "ok"):
        self.failures = failures
        self.result = result
        self.calls = 0

    async def __call__(self, *args):
        self.calls += 1
        await asyncio.sleep(0)
        if self.calls <= self.failures:
            raise ConnectionError(f"attempt {self.calls} failed")
        return self.result(*args)


def json_body(request: httpx.Request) -> dict:
    return json.loads(request.content)
