"""
Shared plumbing for single-slot runners (operations and streams).

A slot owns:
- a TokenSource deciding which attempt may publish
- the task running the current attempt, so it can be cancelled
- an observable state object and its listeners
"""

import asyncio
import copy
from typing import Any, Callable, Generic, TypeVar

from loguru import logger

from asyncslot.services.token import InvocationToken, TokenSource

S = TypeVar("S")

StateListener = Callable[[S], None]


class BaseSlot(Generic[S]):
    """Base class for OperationController and StreamConsumer."""

    _component = "Slot"

    def __init__(self, initial_state: S, name: str | None = None, debug: bool = False):
        self.name = name or self._component.lower()
        self._state = initial_state
        self._tokens = TokenSource()
        self._task: asyncio.Task[Any] | None = None
        self._listeners: list[StateListener[S]] = []
        self._debug = debug

    @property
    def state(self) -> S:
        """Snapshot of the current state."""
        return copy.copy(self._state)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self, listener: StateListener[S]) -> Callable[[], None]:
        """
        Register a listener called with a state snapshot on every change.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: S) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(copy.copy(state))
            except Exception:
                logger.exception(f"[{self._component}] state listener failed for '{self.name}'")

    def _is_current(self, token: InvocationToken) -> bool:
        return self._tokens.is_current(token)

    def _start_attempt(self) -> InvocationToken:
        """Supersede whatever is running and mint a token for a new attempt."""
        self._cancel_task()
        return self._tokens.mint()

    def _stop_attempt(self) -> bool:
        """Invalidate the live token and cancel its task. Returns whether one was live."""
        was_live = self._tokens.invalidate()
        self._cancel_task()
        return was_live

    def _cancel_task(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()

    def _fire(self, handler: Callable[..., Any] | None, *args: Any) -> None:
        """Call an optional handler; its failures are logged, never propagated."""
        if handler is None:
            return
        try:
            handler(*args)
        except Exception:
            logger.exception(
                f"[{self._component}] {getattr(handler, '__name__', 'handler')} "
                f"raised for '{self.name}'"
            )

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[{self._component}] {message}")
