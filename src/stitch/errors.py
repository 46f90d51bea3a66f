"""Exceptions raised by chat sessions."""

from __future__ import annotations

from tenacity import RetryError


class StitchError(Exception):
    """Base class for errors raised by stitch."""


class NoSuitableModelError(StitchError):
    """No model matched the session's selection criteria."""

    def __init__(self, available_models: list[str]) -> None:
        self.available_models = list(available_models)
        super().__init__(
            f"No suitable model, available models: [{', '.join(self.available_models)}]. "
            "Please check the configured model ids and your Anthropic API access."
        )


def unwrap_cause(exc: BaseException) -> BaseException:
    """Return the underlying error behind a transport wrapper.

    Retry exhaustion is unwrapped to the last attempt's error; otherwise an
    explicit ``raise ... from`` cause wins over the exception itself.
    """
    if isinstance(exc, RetryError):
        last = exc.last_attempt.exception()
        if last is not None:
            return last
    return exc.__cause__ or exc
