"""Cooperative cancellation for the scan and fingerprint phase."""

import threading
import time
from typing import Optional

from .errors import Cancelled


class CancelToken:
    """Cancellation flag with an optional deadline.

    Workers poll the token between file reads; nothing is interrupted
    mid-read.
    """

    def __init__(self, deadline: Optional[float] = None):
        """Create a token.

        Args:
            deadline: Absolute ``time.monotonic()`` value after which the token
                reports cancelled, or None for no deadline
        """
        self._event = threading.Event()
        self._deadline = deadline
        self._reason = "cancelled"

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancelToken":
        """Token that cancels itself ``seconds`` from now."""
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self, reason: str = "cancelled") -> None:
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._reason = "deadline exceeded"
            self._event.set()
            return True
        return False

    def raise_if_cancelled(self) -> None:
        """Raise Cancelled if the token has been cancelled or has expired."""
        if self.cancelled:
            raise Cancelled(self._reason)
