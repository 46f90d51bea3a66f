"""Cooperative cancellation tokens passed through to model transports."""

from __future__ import annotations

import threading
from typing import Callable, Protocol, runtime_checkable


class RequestCancelledError(Exception):
    """Raised by a transport that stopped a request because it was cancelled."""


class Disposable:
    """Runs a cleanup callable at most once."""

    def __init__(self, on_dispose: Callable[[], None] | None = None) -> None:
        self._on_dispose = on_dispose

    def dispose(self) -> None:
        callback, self._on_dispose = self._on_dispose, None
        if callback is not None:
            callback()


@runtime_checkable
class CancellationToken(Protocol):
    @property
    def is_cancellation_requested(self) -> bool: ...

    def on_cancellation_requested(self, callback: Callable[[], None]) -> Disposable: ...


class _NeverCancelled:
    @property
    def is_cancellation_requested(self) -> bool:
        return False

    def on_cancellation_requested(self, callback: Callable[[], None]) -> Disposable:
        return Disposable()

    def __repr__(self) -> str:
        return "NOT_CANCELLABLE"


NOT_CANCELLABLE: CancellationToken = _NeverCancelled()


class _SourceToken:
    def __init__(self, source: CancellationTokenSource) -> None:
        self._source = source

    @property
    def is_cancellation_requested(self) -> bool:
        return self._source.cancelled

    def on_cancellation_requested(self, callback: Callable[[], None]) -> Disposable:
        return self._source._subscribe(callback)


class CancellationTokenSource:
    """Owns a token and signals it when :meth:`cancel` is called.

    Callbacks registered after cancellation run immediately. Each callback
    runs at most once.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []
        self.token: CancellationToken = _SourceToken(self)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def dispose(self) -> None:
        """Drop pending callbacks without cancelling."""
        with self._lock:
            self._callbacks = []

    def _subscribe(self, callback: Callable[[], None]) -> Disposable:
        with self._lock:
            if not self._cancelled:
                self._callbacks.append(callback)
                return Disposable(lambda: self._unsubscribe(callback))
        callback()
        return Disposable()

    def _unsubscribe(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)
