from __future__ import annotations

import threading
import time


class ContextDone(Exception):
    """Raised when an operation context has been cancelled or has run out of time."""


class OperationCancelled(ContextDone):
    pass


class DeadlineExceeded(ContextDone):
    pass


class OpContext:
    """
    Cancellation/deadline carrier handed to every repository operation.

    - `deadline` is a `time.monotonic()` instant; None means no deadline.
    - `cancel()` may be called from any thread.
    """

    def __init__(self, *, deadline: float | None = None):
        self.deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> OpContext:
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> OpContext:
        return cls(deadline=time.monotonic() + max(0.0, float(seconds)))

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def done(self) -> bool:
        return self.cancelled or self.remaining() == 0.0

    def raise_if_done(self) -> None:
        if self.cancelled:
            raise OperationCancelled("operation cancelled")
        if self.remaining() == 0.0:
            raise DeadlineExceeded("deadline exceeded")
