"""
OperationController - Runs one async operation per slot.

Combines:
- TokenSource supersession: a new call discards the previous call's effects
- CacheStore consultation and write-through (stale-while-revalidate)
- RetryScheduler for delayed automatic retries

States:
- IDLE: nothing has run, or reset() was called
- LOADING: an invocation is in flight
- SUCCESS: the last invocation returned a value
- ERROR: the last invocation failed (a retry may be pending)

Transitions:
- IDLE/SUCCESS/ERROR → LOADING: execute() misses the cache
- LOADING → SUCCESS | ERROR: the live invocation completes
- LOADING → (previous flags, loading off): cancel()
- any → IDLE: reset()
"""

import asyncio
import inspect
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Any, Awaitable, Callable, Generic, TypeVar

from asyncslot.services.cache import CacheEntry, CacheStore, get_cache_store
from asyncslot.services.retry import RetryPolicy, RetryScheduler, _default_delay
from asyncslot.services.slot import BaseSlot
from asyncslot.services.token import InvocationToken

T = TypeVar("T")

Operation = Callable[..., Awaitable[T] | T]


@dataclass
class OperationState(Generic[T]):
    """Observable state of an operation slot."""

    data: T | None = None
    loading: bool = False
    error: BaseException | None = None
    success: bool = False

    @property
    def idle(self) -> bool:
        return not (self.loading or self.success or self.error is not None)


@dataclass
class OperationConfig:
    """Configuration for an operation slot."""

    retry_count: int = 0  # Automatic retries after a failure
    retry_delay: timedelta = field(default_factory=_default_delay)
    stale_time: timedelta = timedelta(0)  # 0 disables cache reads
    cache_key: str | None = None


@dataclass
class OperationHandlers(Generic[T]):
    """Optional callbacks fired by the controller."""

    on_success: Callable[[T], Any] | None = None
    on_error: Callable[[BaseException], Any] | None = None


class OperationController(BaseSlot[OperationState[T]], Generic[T]):
    """
    Async operation runner with supersession, retries and caching.

    Usage:
        async def load_user(user_id: str) -> dict:
            ...

        users = OperationController(
            load_user,
            OperationConfig(retry_count=3, retry_delay=timedelta(seconds=1)),
            OperationHandlers(on_error=lambda e: logger.warning(e)),
        )

        user = await users.execute("42")
        users.state.data  # same value

        # With caching (stale-while-revalidate)
        settings = OperationController(
            load_settings,
            OperationConfig(cache_key="user-settings", stale_time=timedelta(minutes=5)),
        )
    """

    _component = "OperationController"

    def __init__(
        self,
        operation: Operation[T],
        config: OperationConfig | None = None,
        handlers: OperationHandlers[T] | None = None,
        cache: CacheStore | None = None,
        name: str | None = None,
        debug: bool = False,
    ):
        super().__init__(
            OperationState(),
            name=name or getattr(operation, "__name__", None),
            debug=debug,
        )
        self._operation = operation
        self.config = config or OperationConfig()
        self.handlers = handlers or OperationHandlers()
        self._cache = cache if cache is not None else get_cache_store()
        self._retry = RetryScheduler(
            RetryPolicy(
                max_attempts=self.config.retry_count,
                delay=self.config.retry_delay,
            ),
            name=self.name,
            debug=debug,
        )
        self._last_args: tuple[Any, ...] | None = None

    # State accessors

    @property
    def data(self) -> T | None:
        return self._state.data

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> BaseException | None:
        return self._state.error

    @property
    def success(self) -> bool:
        return self._state.success

    @property
    def retry_attempts(self) -> int:
        """Automatic retries scheduled since the last success or reset."""
        return self._retry.attempts

    @property
    def retry_pending(self) -> bool:
        return self._retry.pending

    # Public operations

    async def execute(self, *args: Any) -> T | None:
        """
        Run the operation with args, superseding any call still in flight.

        Returns:
            The operation's result, or None if this call was superseded or
            cancelled before it finished

        Raises:
            Whatever the operation raised, after it is recorded in state
        """
        self._retry.cancel()
        return await self._run(args, use_cache=True)

    async def retry(self) -> T | None:
        """Re-run with the last arguments, starting the retry count over."""
        if self._last_args is None:
            self._log(f"retry() on '{self.name}' before any invocation, ignoring")
            return None
        self._retry.reset()
        return await self._run(self._last_args, use_cache=True)

    def reset(self) -> None:
        """Cancel in-flight work and return to the initial state. The cache is kept."""
        self._stop_attempt()
        self._retry.reset()
        self._set_state(OperationState())
        self._log(f"'{self.name}' reset")

    def cancel(self) -> None:
        """Stop waiting for in-flight work; keep data, error and success as they are."""
        if self._stop_attempt():
            self._log(f"'{self.name}' cancelled")
        self._retry.cancel()
        self._set_state(replace(self._state, loading=False))

    # Invocation path

    async def _run(self, args: tuple[Any, ...], use_cache: bool) -> T | None:
        if use_cache:
            entry = self._fresh_entry()
            if entry is not None:
                # A cache hit still supersedes whatever was in flight
                self._stop_attempt()
                self._last_args = args
                self._set_state(OperationState(data=entry.value, success=True))
                self._log(f"'{self.name}' served from cache key '{self.config.cache_key}'")
                self._fire(self.handlers.on_success, entry.value)
                return entry.value

        token = self._start_attempt()
        self._last_args = args
        self._set_state(replace(self._state, loading=True, error=None, success=False))
        self._log(f"'{self.name}' invocation #{token.generation} started")

        task = asyncio.ensure_future(self._invoke(args))
        self._task = task
        try:
            result = await task
        except asyncio.CancelledError:
            if not self._is_current(token):
                self._log(f"'{self.name}' invocation #{token.generation} cancelled")
                return None
            # The caller of execute() was cancelled, not the attempt
            self._stop_attempt()
            self._set_state(replace(self._state, loading=False))
            raise
        except Exception as e:
            if not self._is_current(token):
                self._discard(token, "failure")
                return None
            self._fail(token, args, e)
            raise

        if not self._is_current(token):
            self._discard(token, "result")
            return None
        self._succeed(result)
        return result

    async def _invoke(self, args: tuple[Any, ...]) -> T:
        result = self._operation(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _fresh_entry(self) -> CacheEntry | None:
        key = self.config.cache_key
        if not key or self.config.stale_time <= timedelta(0):
            return None
        entry = self._cache.get(key)
        if entry is None or not entry.is_fresh(self.config.stale_time):
            return None
        return entry

    def _succeed(self, result: T) -> None:
        self._task = None
        self._tokens.invalidate()
        if self.config.cache_key:
            self._cache.put(self.config.cache_key, result)
        self._set_state(OperationState(data=result, success=True))
        self._fire(self.handlers.on_success, result)
        self._retry.reset_attempts()

    def _fail(self, token: InvocationToken, args: tuple[Any, ...], error: Exception) -> None:
        self._task = None
        self._tokens.invalidate()
        self._log(f"'{self.name}' invocation #{token.generation} failed: {error!r}")
        self._set_state(replace(self._state, loading=False, error=error, success=False))
        self._fire(self.handlers.on_error, error)
        self._retry.schedule(lambda: self._run(args, use_cache=False))

    def _discard(self, token: InvocationToken, what: str) -> None:
        self._log(f"'{self.name}' invocation #{token.generation} superseded, dropping {what}")
