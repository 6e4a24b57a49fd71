"""Cooperative cancellation for a generation run."""

import threading
from typing import Callable, List

from .errors import RunCancelledError


class CancelToken:
    """
    Set once to cancel a run.

    Stages call `raise_if_cancelled` at their boundaries and `wait` instead of
    sleeping, so a cancel wakes the polling loop immediately. Callbacks
    registered with `on_cancel` run once, on the cancelling thread; the API
    client uses them to stop waiting on an in-flight request and to close its
    HTTP session.
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelledError()

    def wait(self, seconds: float) -> bool:
        """Sleep up to seconds; True if the token was cancelled meanwhile."""
        return self._event.wait(max(0.0, seconds))
