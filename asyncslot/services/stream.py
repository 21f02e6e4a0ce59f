"""
StreamConsumer - Accumulates a chunked response body into text.

Per raw chunk:
- an optional transform rewrites it, or returns SKIP to drop it
- the result is appended to the accumulated text
- on_chunk fires with the transformed chunk

Terminal paths:
- end of data: is_complete, on_complete(accumulated)
- failure while opening or reading: error, on_error(error)
- abort / supersession: nothing fires, accumulated text is kept
"""

import asyncio
from abc import ABC, abstractmethod
from contextlib import aclosing
from dataclasses import dataclass, field, replace
from typing import Any, AsyncIterator, Callable, Literal

from loguru import logger

from asyncslot.services.slot import BaseSlot
from asyncslot.services.token import InvocationToken


class _Skip:
    """Type of the SKIP sentinel."""

    _instance: "_Skip | None" = None

    def __new__(cls) -> "_Skip":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SKIP"

    def __bool__(self) -> bool:
        return False


SKIP = _Skip()

ChunkTransform = Callable[[str], "str | _Skip | None"]

Method = Literal["GET", "POST"]


@dataclass
class StreamRequest:
    """Where and how to open a stream."""

    endpoint: str
    method: Method = "POST"
    headers: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] | None = None

    def merged(self, override: "StreamOverride | None") -> "StreamRequest":
        """Apply a per-call override; headers and body are merged key by key."""
        if override is None:
            return replace(self, headers=dict(self.headers))

        headers = {**self.headers, **(override.headers or {})}
        if self.body is None and override.body is None:
            body = None
        else:
            body = {**(self.body or {}), **(override.body or {})}

        return StreamRequest(
            endpoint=override.endpoint or self.endpoint,
            method=override.method or self.method,
            headers=headers,
            body=body,
        )


@dataclass
class StreamOverride:
    """Per-call changes to a consumer's base request."""

    endpoint: str | None = None
    method: Method | None = None
    headers: dict[str, str] | None = None
    body: dict[str, Any] | None = None
    transform: ChunkTransform | None = None


@dataclass
class StreamState:
    """Observable state of a stream slot."""

    accumulated: str = ""
    is_streaming: bool = False
    is_complete: bool = False
    error: BaseException | None = None


@dataclass
class StreamHandlers:
    """Optional callbacks fired by the consumer."""

    on_chunk: Callable[[str], Any] | None = None
    on_complete: Callable[[str], Any] | None = None
    on_error: Callable[[BaseException], Any] | None = None


class BaseChunkSource(ABC):
    """
    Abstract base class for chunk sources.

    open() is an async generator: establishing the connection happens on the
    first iteration and closing the generator releases it.
    """

    @abstractmethod
    def open(self, request: StreamRequest) -> AsyncIterator[str]:
        """Yield raw text chunks until the source signals end of data."""
        ...


class StreamConsumer(BaseSlot[StreamState]):
    """
    Stream runner with abort and supersession.

    Usage:
        consumer = StreamConsumer(
            StreamRequest(
                endpoint="https://api.openai.com/v1/chat/completions",
                headers={"Authorization": f"Bearer {api_key}"},
                body={"model": "gpt-4o-mini", "stream": True, "messages": messages},
            ),
            transform=openai_sse_transform,
            handlers=StreamHandlers(on_chunk=print),
        )

        await consumer.start_stream()
        consumer.accumulated  # full text

        # Same endpoint, different prompt
        await consumer.start_stream(StreamOverride(body={"messages": other}))
    """

    _component = "StreamConsumer"

    def __init__(
        self,
        request: StreamRequest,
        transform: ChunkTransform | None = None,
        handlers: StreamHandlers | None = None,
        source: BaseChunkSource | None = None,
        name: str | None = None,
        debug: bool = False,
    ):
        super().__init__(StreamState(), name=name or request.endpoint, debug=debug)
        from asyncslot.services.http import HttpChunkSource

        self.request = request
        self.transform = transform
        self.handlers = handlers or StreamHandlers()
        self.source = source or HttpChunkSource(debug=debug)

    # State accessors

    @property
    def accumulated(self) -> str:
        return self._state.accumulated

    @property
    def is_streaming(self) -> bool:
        return self._state.is_streaming

    @property
    def is_complete(self) -> bool:
        return self._state.is_complete

    @property
    def error(self) -> BaseException | None:
        return self._state.error

    # Public operations

    async def start_stream(self, override: StreamOverride | None = None) -> None:
        """
        Open the stream and consume it to the end.

        Returns once the stream completes, fails, is aborted, or is superseded
        by another start_stream(). Failures are reported through state and
        on_error, not raised.
        """
        request = self.request.merged(override)
        transform = self.transform
        if override is not None and override.transform is not None:
            transform = override.transform

        token = self._start_attempt()
        self._set_state(StreamState(is_streaming=True))
        self._log(
            f"'{self.name}' stream #{token.generation} opening "
            f"{request.method} {request.endpoint}"
        )

        task = asyncio.ensure_future(self._consume(token, request, transform))
        self._task = task
        try:
            await task
        except asyncio.CancelledError:
            if not self._is_current(token):
                self._log(f"'{self.name}' stream #{token.generation} stopped")
                return
            # The caller of start_stream() was cancelled
            self._stop_attempt()
            self._set_state(replace(self._state, is_streaming=False))
            raise

    def abort(self) -> None:
        """Stop the live stream at its next suspension point. Not an error."""
        if not self._stop_attempt():
            return
        self._set_state(replace(self._state, is_streaming=False))
        self._log(f"'{self.name}' stream aborted")

    def reset(self) -> None:
        """Abort, then clear accumulated text, error and completion."""
        self.abort()
        self._set_state(StreamState())

    # Read loop

    async def _consume(
        self,
        token: InvocationToken,
        request: StreamRequest,
        transform: ChunkTransform | None,
    ) -> None:
        try:
            async with aclosing(self.source.open(request)) as chunks:
                async for raw in chunks:
                    if not self._is_current(token):
                        return
                    self._accept(raw, transform)
        except Exception as e:
            if not self._is_current(token):
                return
            self._finish()
            logger.warning(f"Stream '{self.name}' failed: {type(e).__name__}: {e}")
            self._set_state(replace(self._state, is_streaming=False, error=e))
            self._fire(self.handlers.on_error, e)
            return

        if not self._is_current(token):
            return
        self._finish()
        self._set_state(replace(self._state, is_streaming=False, is_complete=True))
        self._log(
            f"'{self.name}' stream #{token.generation} complete "
            f"({len(self._state.accumulated)} chars)"
        )
        self._fire(self.handlers.on_complete, self._state.accumulated)

    def _accept(self, raw: str, transform: ChunkTransform | None) -> None:
        chunk = self._transform(raw, transform)
        if chunk is SKIP:
            return
        self._set_state(replace(self._state, accumulated=self._state.accumulated + chunk))
        self._fire(self.handlers.on_chunk, chunk)

    def _transform(self, raw: str, transform: ChunkTransform | None) -> "str | _Skip":
        if transform is None:
            return raw
        try:
            chunk = transform(raw)
        except Exception as e:
            logger.warning(
                f"Chunk transform failed on '{self.name}', skipping chunk: "
                f"{type(e).__name__}: {e}"
            )
            return SKIP
        if chunk is None:
            return SKIP
        return chunk

    def _finish(self) -> None:
        self._task = None
        self._tokens.invalidate()
