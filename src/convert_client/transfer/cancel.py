import threading
import time
from typing import Callable

from ..errors import UploadCancelled, UploadTimeout


class CancelToken:
    """Cancellation signal with an optional deadline.

    Callbacks registered with :meth:`on_cancel` run once, on the thread that
    cancels (the caller, or a timer thread when the deadline expires). A
    callback registered after cancellation runs immediately.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._error: UploadCancelled | None = None
        self._callbacks: list[Callable[[UploadCancelled], None]] = []
        self._deadline: float | None = None
        self._timeout = 0.0
        self._timer: threading.Timer | None = None
        if timeout is not None:
            self._deadline = time.monotonic() + timeout
            self._timeout = timeout
            self._timer = threading.Timer(timeout, self.expire)
            self._timer.daemon = True
            self._timer.start()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def error(self) -> UploadCancelled | None:
        return self._error

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or ``None`` without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        """True once the deadline has passed, even before the timer fires."""
        return self._deadline is not None and time.monotonic() >= self._deadline

    def expire(self) -> None:
        self.cancel(UploadTimeout(f"deadline of {self._timeout:.1f}s expired"))

    def cancel(self, error: UploadCancelled | None = None) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._error = error or UploadCancelled("operation cancelled")
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        if self._timer is not None:
            self._timer.cancel()
        for callback in callbacks:
            callback(self._error)

    def on_cancel(self, callback: Callable[[UploadCancelled], None]) -> Callable[[], None]:
        """Register *callback*; return a function that unregisters it."""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._discard(callback)
        callback(self._error)  # type: ignore[arg-type]
        return lambda: None

    def _discard(self, callback: Callable[[UploadCancelled], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def raise_if_cancelled(self) -> None:
        if self._error is not None:
            raise self._error

    def wait(self, timeout: float) -> bool:
        """Sleep up to *timeout* seconds; return True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def close(self) -> None:
        """Stop the deadline timer without cancelling."""
        if self._timer is not None:
            self._timer.cancel()
