"""Shared test fixtures."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from stitch.config import Settings
from stitch.llm.client import ClaudeClient
from stitch.llm.models import ChatMessage, StaticModelSelector
from stitch.telemetry import RecordingTelemetry


class FakeChatModel:
    """Chat model that replays scripted responses, one per request.

    A scripted response is either a string, a list of text chunks, or an
    exception to raise instead of answering.
    """

    vendor = "test"

    def __init__(
        self,
        responses: list,
        *,
        name: str = "Fake Sonnet",
        family: str = "claude-sonnet",
        model_id: str = "fake-sonnet-1",
    ) -> None:
        self._responses = list(responses)
        self.name = name
        self.family = family
        self.id = model_id
        self.version = "1"
        self.calls: list[dict] = []

    def send_request(self, messages, options, cancellation):
        self.calls.append(
            {"messages": list(messages), "options": options, "cancellation": cancellation}
        )
        response = self._responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        chunks = [response] if isinstance(response, str) else response
        return (chunk for chunk in chunks)

    @property
    def rounds(self) -> int:
        return len(self.calls)


class FakeStream:
    """Stand-in for the Anthropic SDK's event stream."""

    def __init__(self, events: list) -> None:
        self._events = events
        self.closed = False

    def __iter__(self):
        return iter(self._events)

    def close(self) -> None:
        self.closed = True


def make_stream_events(chunks: list[str], input_tokens: int = 10, output_tokens: int = 20) -> list:
    """Build the event sequence of a streamed Anthropic message."""
    events = [
        SimpleNamespace(
            type="message_start",
            message=SimpleNamespace(usage=SimpleNamespace(input_tokens=input_tokens)),
        ),
        SimpleNamespace(type="content_block_start"),
    ]
    events.extend(
        SimpleNamespace(
            type="content_block_delta",
            delta=SimpleNamespace(type="text_delta", text=chunk),
        )
        for chunk in chunks
    )
    events.append(SimpleNamespace(type="content_block_stop"))
    events.append(
        SimpleNamespace(type="message_delta", usage=SimpleNamespace(output_tokens=output_tokens))
    )
    events.append(SimpleNamespace(type="message_stop"))
    return events


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        anthropic_api_key="test-key-not-real",
        model="claude-sonnet-4-20250514",
        max_tokens=1024,
        temperature=0.7,
        max_rounds=3,
        end_mark="<END>",
    )


@pytest.fixture
def mock_claude_client(settings: Settings) -> ClaudeClient:
    """Create a ClaudeClient with a mocked Anthropic SDK."""
    client = ClaudeClient(settings)
    client._client = MagicMock()
    return client


@pytest.fixture
def telemetry() -> RecordingTelemetry:
    return RecordingTelemetry()


@pytest.fixture
def seed_messages() -> list[ChatMessage]:
    return [
        ChatMessage.system("You are terse."),
        ChatMessage.user("Example question"),
        ChatMessage.assistant("Example answer<END>"),
    ]


@pytest.fixture
def make_selector():
    """Wrap fake models in a selector."""

    def _make(*models: FakeChatModel) -> StaticModelSelector:
        return StaticModelSelector(models)

    return _make
