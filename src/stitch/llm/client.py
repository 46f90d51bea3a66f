"""Wrapper around the Anthropic Claude SDK."""

from __future__ import annotations

from typing import Iterator

from anthropic import APIStatusError, Anthropic, AuthenticationError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from stitch.config import Settings
from stitch.llm.cancellation import NOT_CANCELLABLE, CancellationToken, RequestCancelledError


def _is_retryable(exc: BaseException) -> bool:
    """Return True only for transient API errors (rate-limits, server errors).

    Authentication errors (401) and bad-request errors (400) are not
    retried; they will never succeed without a config change.
    """
    if isinstance(exc, AuthenticationError):
        return False
    if isinstance(exc, APIStatusError) and exc.status_code < 500:
        return exc.status_code == 429
    return True


_transient_retry = retry(
    retry=retry_if_exception(_is_retryable),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=30),
)


class ClaudeClient:
    """Thin wrapper providing retry logic and token tracking."""

    def __init__(self, settings: Settings) -> None:
        self._client = Anthropic(api_key=settings.anthropic_api_key)
        self._model = settings.model
        self._model_ids = settings.model_ids
        self._max_tokens = settings.max_tokens
        self._temperature = settings.temperature
        self._total_input_tokens = 0
        self._total_output_tokens = 0

    def available_models(self) -> list[str]:
        return list(self._model_ids)

    @_transient_retry
    def _open_stream(self, **request: object):
        # Connection and status errors surface here, before any text is yielded.
        return self._client.messages.create(stream=True, **request)

    def generate_streaming(
        self,
        system: str,
        messages: list[dict],
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        cancellation: CancellationToken = NOT_CANCELLABLE,
    ) -> Iterator[str]:
        """Stream a response from Claude, yielding text chunks.

        The token is checked before the request and between chunks; a
        cancelled stream is closed and ``RequestCancelledError`` is raised.
        """
        if cancellation.is_cancellation_requested:
            raise RequestCancelledError("Request cancelled before it was sent")

        stream = self._open_stream(
            model=model or self._model,
            max_tokens=max_tokens or self._max_tokens,
            temperature=temperature if temperature is not None else self._temperature,
            system=system,
            messages=messages,
        )
        try:
            for event in stream:
                if cancellation.is_cancellation_requested:
                    raise RequestCancelledError("Request cancelled while streaming")
                if event.type == "message_start":
                    self._total_input_tokens += event.message.usage.input_tokens
                elif event.type == "message_delta":
                    self._total_output_tokens += event.usage.output_tokens
                elif event.type == "content_block_delta" and event.delta.type == "text_delta":
                    yield event.delta.text
        finally:
            stream.close()

    @property
    def usage_summary(self) -> dict:
        return {
            "total_input_tokens": self._total_input_tokens,
            "total_output_tokens": self._total_output_tokens,
        }
