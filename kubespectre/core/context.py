"""
Cancellation context shared by the engine, the checkers and the cluster client.

One AuditContext is created per invocation. It carries an optional deadline
and a cancel signal that can be fired once from any thread. Checkers never
poll it directly; the cluster client checks it before every API call, so a
check observes cancellation on its next read.
"""

from __future__ import annotations

import threading
import time

from kubespectre.exceptions import AuditCancelledError, AuditTimeoutError

DEADLINE_EXCEEDED = "deadline exceeded"


class AuditContext:
    """
    Thread-safe cancellation signal with an optional deadline.

    Example:
        ctx = AuditContext(timeout=300)
        ...
        ctx.raise_if_cancelled()
    """

    def __init__(self, timeout: float | None = None) -> None:
        """
        Args:
            timeout: Seconds until the context expires; None or <= 0 disables it
        """
        self.timeout = timeout if timeout and timeout > 0 else None
        self._deadline = (
            time.monotonic() + self.timeout if self.timeout is not None else None
        )
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        """True once cancel() was called or the deadline passed."""
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel(DEADLINE_EXCEEDED)
            return True
        return False

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def timed_out(self) -> bool:
        return self.cancelled and self._reason == DEADLINE_EXCEEDED

    def cancel(self, reason: str = "context cancelled") -> None:
        """Fire the signal. Only the first reason is kept."""
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or timeout elapses. Returns cancelled state."""
        remaining = self.remaining()
        if remaining is not None and (timeout is None or remaining < timeout):
            timeout = remaining
        self._event.wait(timeout)
        return self.cancelled

    def raise_if_cancelled(self) -> None:
        """
        Raise the matching fatal error if the context is done.

        Raises:
            AuditTimeoutError: If the deadline passed
            AuditCancelledError: If cancel() was called
        """
        if not self.cancelled:
            return
        if self._reason == DEADLINE_EXCEEDED:
            raise AuditTimeoutError(
                "audit deadline exceeded",
                details={"timeout_seconds": self.timeout},
            )
        raise AuditCancelledError(f"audit cancelled: {self._reason}")
