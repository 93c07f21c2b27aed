"""Request deadlines and cancellation shared by every pipeline stage."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from outfit_app.errors import DeadlineExceeded


class Deadline:
    """A total time budget for one request that callers can also cancel.

    Stages call :meth:`check` before starting and pass :meth:`remaining` as the
    timeout ceiling for their outbound call, so an aborted request never leaves
    a call running past its budget.
    """

    def __init__(self, seconds: float | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        if seconds is not None and seconds < 0:
            raise ValueError("Deadline seconds must be non-negative")
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds
        self._cancelled = threading.Event()

    @classmethod
    def after(cls, seconds: float | None) -> "Deadline":
        return cls(seconds)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        if self.cancelled:
            return True
        return self._expires_at is not None and self._clock() >= self._expires_at

    def remaining(self) -> Optional[float]:
        """Seconds left, ``None`` when unbounded, ``0.0`` once expired."""

        if self.cancelled:
            return 0.0
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def check(self, stage: str) -> None:
        if self.cancelled:
            raise DeadlineExceeded(f"Request cancelled before {stage}")
        if self.expired:
            raise DeadlineExceeded(f"Request deadline exceeded before {stage}")


def effective_timeout(default: float, ceiling: float | None) -> float:
    """Clamp a client's default timeout to a caller supplied ceiling.

    A ceiling of zero or less means the request budget is already spent
    (for example cancelled after the last stage check), so no call is made.
    """

    if ceiling is None:
        return default
    if ceiling <= 0:
        raise DeadlineExceeded("Request deadline exhausted before outbound call")
    return min(default, ceiling)


__all__ = ["Deadline", "effective_timeout"]
