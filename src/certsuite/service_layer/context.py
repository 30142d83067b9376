"""Cancellable run-scoped context.

A `RunContext` bounds every create and poll call made on behalf of a run.
Waiters sleep on its event rather than `time.sleep`, so `cancel()` wakes them
immediately. An optional absolute deadline makes the context cancel itself
once the whole run has used up its time.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from certsuite.domain.errors import WaitCancelledError


class RunContext:
    """Cancellation token shared by all cases of one run.

    Args:
        timeout: Seconds until the context expires; ``None`` for no deadline.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._event = threading.Event()
        self._clock = clock
        self._deadline = None if timeout is None else clock() + timeout
        self._reason = ""

    @property
    def cancelled(self) -> bool:
        """True once `cancel()` was called or the deadline has passed."""
        if self._event.is_set():
            return True
        if self._deadline is not None and self._clock() >= self._deadline:
            self.cancel("run deadline exceeded")
            return True
        return False

    def cancel(self, reason: str = "run cancelled") -> None:
        """Cancel the context, waking every waiter blocked on it."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise `WaitCancelledError` if the context is cancelled."""
        if self.cancelled:
            raise WaitCancelledError(self._reason)

    def sleep(self, seconds: float) -> None:
        """Block for ``seconds`` or until cancellation, whichever comes first.

        Raises:
            WaitCancelledError: If the context is or becomes cancelled.
        """
        if self._deadline is not None:
            seconds = min(seconds, max(0.0, self._deadline - self._clock()))
        self._event.wait(seconds)
        self.raise_if_cancelled()
