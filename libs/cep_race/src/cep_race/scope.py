"""Shared cancellation signal and deadline for one race."""

import asyncio


class RaceScope:
    """
    Cancellable, deadline-bounded execution scope shared by every source task.

    The scope is cancelled explicitly by the coordinator (first success, first
    terminal failure, deadline or caller cancellation). Tasks check it before
    each attempt and before publishing an outcome, and wait on it during
    backoff so that a pending retry never outlives the race.
    """

    def __init__(self, timeout: float):
        loop = asyncio.get_running_loop()
        self._loop = loop
        self.timeout = timeout
        self.started_at = loop.time()
        self.deadline = self.started_at + timeout
        self._cancelled = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def elapsed(self) -> float:
        return self._loop.time() - self.started_at

    def remaining(self) -> float:
        return max(0.0, self.deadline - self._loop.time())

    async def wait_cancelled(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds; return True early if the scope is cancelled."""
        if self.cancelled:
            return True
        if timeout <= 0:
            return False
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True
