"""
Cooperative cancellation for long-running extraction work.

A token is shared between whoever starts the work and the code doing it.
The worker checks it at its own suspension points (before a read, while
waiting on a subprocess, while blocked on a full queue) and bails out.
"""

import threading
import time
from typing import Optional


class CancellationToken:
    """
    A cancel flag with an optional deadline.

    Once the deadline passes the token reports itself cancelled, the same
    as if cancel() had been called.
    """

    def __init__(self, deadline: Optional[float] = None) -> None:
        self._event = threading.Event()
        self._deadline = deadline  # time.monotonic() value

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancellationToken":
        """Create a token that cancels itself after `seconds`."""
        return cls(deadline=time.monotonic() + seconds)

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def set_timeout(self, seconds: float) -> None:
        """Install (or move) the deadline relative to now."""
        self._deadline = time.monotonic() + seconds

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

