"""Multi-round chat session that keeps asking the model to continue.

A single model response may stop short of a full answer. The session asks the
model to end its answer with an end mark; while the accumulated output does
not end with it, the session sends a continuation prompt and appends the next
response, up to ``max_rounds`` requests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from stitch.errors import NoSuitableModelError, unwrap_cause
from stitch.llm.cancellation import NOT_CANCELLABLE, CancellationToken
from stitch.llm.models import ChatMessage, ChatModel, ModelCriteria, ModelSelector, RequestOptions
from stitch.llm.prompts import continuation_prompt
from stitch.llm.transcript import Transcript
from stitch.logging import get_logger
from stitch.telemetry import (
    CHAT_COMPLETED,
    CHAT_STARTED,
    MODEL_SELECTED,
    NO_SUITABLE_MODEL_FOUND,
    REQUEST_FAILED,
    REQUEST_SENT,
    NullTelemetry,
    TelemetrySink,
    instrument_operation,
)

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from stitch.config import Settings
    from stitch.llm.client import ClaudeClient

DEFAULT_END_MARK = "<|endofresponse|>"
DEFAULT_MAX_ROUNDS = 3
DEFAULT_CRITERIA = ModelCriteria(family="claude-sonnet")
DEFAULT_REQUEST_OPTIONS = RequestOptions()

SEND_OPERATION = "stitch.sendRequest"


def _first_line(text: str) -> str:
    return text.strip().split("\n")[0]


def strip_end_mark(answer: str, end_mark: str) -> str:
    """Remove the first comment-wrapped end mark, then the first bare one."""
    return answer.replace(f"//{end_mark}", "", 1).replace(end_mark, "", 1)


class ContinuationChatSession:
    """Drives a chat model to a complete answer over several rounds.

    Configuration is fixed at construction. Every :meth:`send` call works on
    its own transcript copied from ``seed_messages``, so concurrent calls do
    not share mutable state.
    """

    def __init__(
        self,
        seed_messages: Sequence[ChatMessage],
        selector: ModelSelector,
        *,
        criteria: ModelCriteria = DEFAULT_CRITERIA,
        request_options: RequestOptions = DEFAULT_REQUEST_OPTIONS,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
        end_mark: str = DEFAULT_END_MARK,
        telemetry: TelemetrySink | None = None,
        logger: FilteringBoundLogger | None = None,
    ) -> None:
        if max_rounds < 1:
            raise ValueError(f"max_rounds must be at least 1, got {max_rounds}")
        if not end_mark:
            raise ValueError("end_mark must not be empty")
        self._seed = tuple(seed_messages)
        self._selector = selector
        self._criteria = criteria
        self._request_options = request_options
        self._max_rounds = max_rounds
        self._end_mark = end_mark
        self._telemetry = telemetry or NullTelemetry()
        self._log = logger or get_logger(__name__)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        seed_messages: Sequence[ChatMessage] = (),
        *,
        client: ClaudeClient | None = None,
        criteria: ModelCriteria | None = None,
        telemetry: TelemetrySink | None = None,
    ) -> ContinuationChatSession:
        """Build a session backed by Claude models from ``settings``."""
        from stitch.llm.claude import AnthropicModelSelector
        from stitch.llm.client import ClaudeClient

        client = client or ClaudeClient(settings)
        return cls(
            seed_messages,
            AnthropicModelSelector(client, settings.model_ids),
            criteria=criteria or ModelCriteria(id=settings.model),
            request_options=RequestOptions(
                model_options={
                    "max_tokens": settings.max_tokens,
                    "temperature": settings.temperature,
                }
            ),
            max_rounds=settings.max_rounds,
            end_mark=settings.end_mark,
            telemetry=telemetry,
        )

    @property
    def end_mark(self) -> str:
        return self._end_mark

    @property
    def max_rounds(self) -> int:
        return self._max_rounds

    def send(
        self,
        user_message: str,
        request_options: RequestOptions | None = None,
        cancellation: CancellationToken = NOT_CANCELLABLE,
    ) -> str:
        """Send ``user_message`` and return the stitched answer without the end mark.

        Raises:
            ValueError: If ``user_message`` is empty.
            NoSuitableModelError: If no model matches the session criteria.
            Exception: The underlying transport error of a failed round.
        """
        if not user_message:
            raise ValueError("user_message must not be empty")
        return instrument_operation(SEND_OPERATION)(self._send)(
            user_message, request_options, cancellation
        )

    def _select_model(self) -> ChatModel:
        candidates = self._selector.select(self._criteria)
        if not candidates:
            names = [m.name for m in self._selector.select()]
            self._telemetry.emit(NO_SUITABLE_MODEL_FOUND, {"models": ", ".join(names)})
            raise NoSuitableModelError(names)
        model = candidates[0]
        self._telemetry.emit(MODEL_SELECTED, {"model": model.name})
        return model

    def _send(
        self,
        user_message: str,
        request_options: RequestOptions | None,
        cancellation: CancellationToken,
    ) -> str:
        self._telemetry.emit(CHAT_STARTED)
        model = self._select_model()
        options = request_options if request_options is not None else self._request_options

        transcript = Transcript.from_seed(self._seed)
        answer = ""
        rounds = 0
        prompt = user_message
        while True:
            transcript.add_user(prompt)
            rounds += 1
            self._log.debug("user_message", round=rounds, content=prompt)
            self._log.info("user_summary", round=rounds, text=f"{_first_line(prompt)}...")
            self._log.info("assistant_thinking", round=rounds)

            raw = self._request(model, transcript, options, cancellation)

            transcript.add_assistant(raw)
            self._log.debug("assistant_message", round=rounds, content=raw)
            self._log.info("assistant_summary", round=rounds, text=f"{_first_line(raw)}...")
            answer += raw

            complete = answer.strip().endswith(self._end_mark)
            if complete or rounds >= self._max_rounds:
                break
            prompt = continuation_prompt(self._end_mark)

        self._log.debug(
            "chat_completed", rounds=rounds, turns=transcript.turn_count, complete=complete
        )
        self._telemetry.emit(CHAT_COMPLETED, {"rounds": rounds})
        return strip_end_mark(answer, self._end_mark)

    def _request(
        self,
        model: ChatModel,
        transcript: Transcript,
        options: RequestOptions,
        cancellation: CancellationToken,
    ) -> str:
        """Run one round and return the full raw response text."""
        try:
            self._telemetry.emit(REQUEST_SENT)
            chunks = model.send_request(list(transcript), options, cancellation)
            return "".join(chunks)
        except Exception as exc:
            cause = unwrap_cause(exc)
            self._telemetry.emit(REQUEST_FAILED, {"error": repr(cause)})
            self._log.error("request_failed", model=model.name, error=repr(cause))
            if cause is exc:
                raise
            raise cause from None
