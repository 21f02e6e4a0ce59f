"""
RetryScheduler - Re-runs a failed attempt after a fixed delay.

The scheduler only owns the counting and the timer. The re-invocation itself
is a callable supplied by the owner, so each retry runs the owner's full
invocation path (supersession, state transitions) exactly like a fresh call.

Counter rules:
- schedule() increments the counter when a retry is allowed
- reset_attempts() zeroes it (success)
- reset() zeroes it and drops any pending timer (manual retry, reset)
"""

import asyncio
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Awaitable, Callable

from loguru import logger

from asyncslot.settings import global_settings


def _default_delay() -> timedelta:
    return timedelta(milliseconds=global_settings.retry_delay_ms)


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for automatic retries."""

    max_attempts: int = 0  # Retries after the first failure; 0 disables
    delay: timedelta = field(default_factory=_default_delay)

    def should_retry(self, attempts_so_far: int) -> bool:
        return attempts_so_far < self.max_attempts


class RetryScheduler:
    """
    Schedules delayed re-invocations for a single slot.

    Usage:
        scheduler = RetryScheduler(RetryPolicy(max_attempts=3))

        try:
            return await attempt(*args)
        except Exception:
            scheduler.schedule(lambda: attempt(*args))
            raise
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        name: str = "slot",
        debug: bool = False,
    ):
        self.policy = policy or RetryPolicy()
        self.name = name
        self._attempts = 0
        self._pending: asyncio.Task[None] | None = None
        self._debug = debug

    @property
    def attempts(self) -> int:
        """Retries scheduled since the last success or reset."""
        return self._attempts

    @property
    def pending(self) -> bool:
        """Whether a retry timer is waiting to fire."""
        return self._pending is not None and not self._pending.done()

    def should_retry(self) -> bool:
        return self.policy.should_retry(self._attempts)

    def schedule(self, retry_fn: Callable[[], Awaitable[Any]]) -> bool:
        """
        Schedule retry_fn after the policy delay if attempts remain.

        Returns:
            True if a retry was scheduled
        """
        if not self.should_retry():
            self._log(
                f"Retries exhausted for '{self.name}' "
                f"({self._attempts}/{self.policy.max_attempts})"
            )
            return False

        self.cancel()
        self._attempts += 1
        logger.info(
            f"Retry {self._attempts}/{self.policy.max_attempts} for '{self.name}' "
            f"in {self.policy.delay.total_seconds()}s"
        )
        self._pending = asyncio.create_task(self._fire(retry_fn))
        return True

    async def _fire(self, retry_fn: Callable[[], Awaitable[Any]]) -> None:
        await asyncio.sleep(self.policy.delay.total_seconds())
        # Past the timer: from here on the retry is an ordinary invocation
        self._pending = None
        try:
            await retry_fn()
        except Exception as e:
            # Already recorded by the owner's error path
            self._log(f"Retry for '{self.name}' failed: {type(e).__name__}: {e}")

    def cancel(self) -> bool:
        """Drop the pending retry timer, if any."""
        task, self._pending = self._pending, None
        if task is None or task.done():
            return False
        task.cancel()
        self._log(f"Pending retry for '{self.name}' cancelled")
        return True

    def reset_attempts(self) -> None:
        self._attempts = 0

    def reset(self) -> None:
        """Zero the counter and drop any pending retry."""
        self.cancel()
        self._attempts = 0

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[RetryScheduler] {message}")
