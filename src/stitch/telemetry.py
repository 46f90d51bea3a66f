"""Telemetry sinks and the operation instrumentation wrapper.

Sessions report lifecycle events through a :class:`TelemetrySink`. Sinks are
fire-and-forget: they must not raise into the caller.
"""

from __future__ import annotations

import time
from functools import wraps
from typing import Any, Callable, Protocol, TypeVar

from stitch.logging import get_logger

log = get_logger(__name__)

EVENT_PREFIX = "stitch.lm."
CHAT_STARTED = EVENT_PREFIX + "chatStarted"
MODEL_SELECTED = EVENT_PREFIX + "modelSelected"
NO_SUITABLE_MODEL_FOUND = EVENT_PREFIX + "noSuitableModelFound"
REQUEST_SENT = EVENT_PREFIX + "requestSent"
REQUEST_FAILED = EVENT_PREFIX + "requestFailed"
CHAT_COMPLETED = EVENT_PREFIX + "chatCompleted"

F = TypeVar("F", bound=Callable[..., Any])


class TelemetrySink(Protocol):
    def emit(self, event_name: str, properties: dict[str, Any] | None = None) -> None: ...


class NullTelemetry:
    """Discards every event."""

    def emit(self, event_name: str, properties: dict[str, Any] | None = None) -> None:
        pass


class LoggingTelemetry:
    """Writes every event to the structured log."""

    def emit(self, event_name: str, properties: dict[str, Any] | None = None) -> None:
        log.info("telemetry_event", telemetry_event=event_name, **(properties or {}))


class RecordingTelemetry:
    """Keeps events in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, event_name: str, properties: dict[str, Any] | None = None) -> None:
        self.events.append((event_name, dict(properties or {})))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def count(self, event_name: str) -> int:
        return self.names.count(event_name)


def instrument_operation(name: str, telemetry: TelemetrySink | None = None) -> Callable[[F], F]:
    """Wrap a call in a named operation span.

    The span logs start and end with the duration. On failure it emits
    ``<name>.failed`` and re-raises the original error untouched.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            log.debug("operation_start", operation=name)
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                duration_ms = round((time.perf_counter() - started) * 1000, 1)
                log.debug("operation_end", operation=name, outcome="error", duration_ms=duration_ms)
                if telemetry is not None:
                    telemetry.emit(
                        f"{name}.failed",
                        {"error": type(exc).__name__, "duration_ms": duration_ms},
                    )
                raise
            duration_ms = round((time.perf_counter() - started) * 1000, 1)
            log.debug("operation_end", operation=name, outcome="ok", duration_ms=duration_ms)
            return result

        return wrapper  # type: ignore[return-value]

    return decorator
