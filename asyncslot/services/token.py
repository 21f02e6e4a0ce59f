"""
Invocation tokens - which attempt in a slot is allowed to publish results.

Every start of an operation or stream mints a token and invalidates the one
before it. Async work that resumes after a suspension point checks its token
before touching shared state; a dead token means the work was superseded or
aborted and its effects must be dropped.
"""

import itertools

_generations = itertools.count(1)


class InvocationToken:
    """Handle for one authorized attempt."""

    __slots__ = ("generation", "_live")

    def __init__(self, generation: int):
        self.generation = generation
        self._live = True

    @property
    def is_live(self) -> bool:
        return self._live

    def invalidate(self) -> None:
        self._live = False

    def __repr__(self) -> str:
        state = "live" if self._live else "dead"
        return f"<InvocationToken #{self.generation} {state}>"


class TokenSource:
    """
    Mints tokens for one slot. At most one token is live at a time.

    Usage:
        tokens = TokenSource()
        token = tokens.mint()
        result = await work()
        if not tokens.is_current(token):
            return  # superseded
    """

    def __init__(self):
        self._current: InvocationToken | None = None

    @property
    def current(self) -> InvocationToken | None:
        return self._current

    def mint(self) -> InvocationToken:
        """Invalidate the live token and issue a new one."""
        self.invalidate()
        self._current = InvocationToken(next(_generations))
        return self._current

    def invalidate(self) -> bool:
        """Invalidate the live token, if any. Returns whether one was live."""
        token, self._current = self._current, None
        if token is None:
            return False
        token.invalidate()
        return True

    def is_current(self, token: InvocationToken) -> bool:
        return token is self._current and token.is_live
