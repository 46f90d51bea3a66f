"""Tests for the LLM client wrapper, Claude models and transcript helpers."""

from __future__ import annotations

import pytest

from stitch.config import Settings
from stitch.llm.cancellation import (
    NOT_CANCELLABLE,
    CancellationToken,
    CancellationTokenSource,
    RequestCancelledError,
)
from stitch.llm.claude import AnthropicModelSelector, ClaudeChatModel, _describe, to_anthropic
from stitch.llm.client import ClaudeClient
from stitch.llm.models import ChatMessage, ModelCriteria, RequestOptions
from stitch.llm.prompts import continuation_prompt, render
from stitch.llm.transcript import Transcript
from stitch.session import ContinuationChatSession
from tests.conftest import FakeStream, make_stream_events


def test_generate_streaming_yields_text(mock_claude_client: ClaudeClient) -> None:
    """Only text deltas are yielded; usage is read from start and delta events."""
    stream = FakeStream(make_stream_events(["Hel", "lo"], input_tokens=7, output_tokens=3))
    mock_claude_client._client.messages.create.return_value = stream

    chunks = list(
        mock_claude_client.generate_streaming(
            system="sys",
            messages=[{"role": "user", "content": "hi"}],
            model="claude-opus-4-20250514",
            max_tokens=50,
        )
    )

    assert chunks == ["Hel", "lo"]
    assert stream.closed
    assert mock_claude_client.usage_summary["total_input_tokens"] == 7
    assert mock_claude_client.usage_summary["total_output_tokens"] == 3

    kwargs = mock_claude_client._client.messages.create.call_args.kwargs
    assert kwargs["stream"] is True
    assert kwargs["model"] == "claude-opus-4-20250514"
    assert kwargs["max_tokens"] == 50
    assert kwargs["temperature"] == 0.7
    assert kwargs["system"] == "sys"


def test_generate_streaming_cancelled_before_send(mock_claude_client: ClaudeClient) -> None:
    source = CancellationTokenSource()
    source.cancel()

    with pytest.raises(RequestCancelledError):
        list(mock_claude_client.generate_streaming("s", [], cancellation=source.token))

    mock_claude_client._client.messages.create.assert_not_called()


def test_generate_streaming_cancelled_mid_stream(mock_claude_client: ClaudeClient) -> None:
    source = CancellationTokenSource()
    stream = FakeStream(make_stream_events(["one", "two", "three"]))
    mock_claude_client._client.messages.create.return_value = stream

    received = []
    with pytest.raises(RequestCancelledError):
        for chunk in mock_claude_client.generate_streaming("s", [], cancellation=source.token):
            received.append(chunk)
            source.cancel()

    assert received == ["one"]
    assert stream.closed


# ---------------------------------------------------------------------------
# Claude models and selection
# ---------------------------------------------------------------------------


def test_describe_model_ids() -> None:
    assert _describe("claude-sonnet-4-20250514") == ("Claude Sonnet 4", "claude-sonnet", "20250514")
    assert _describe("claude-3-5-haiku-20241022") == ("Claude Haiku 3.5", "claude-haiku", "20241022")
    assert _describe("claude-opus-latest") == ("Claude Opus Latest", "claude-opus-latest", "")


def test_to_anthropic_folds_system_and_merges_turns() -> None:
    system, messages = to_anthropic(
        [
            ChatMessage.system("Be brief."),
            ChatMessage.system("Use English."),
            ChatMessage.user("Sample?"),
            ChatMessage.user("Really?"),
            ChatMessage.assistant("Yes."),
        ]
    )

    assert system == "Be brief.\n\nUse English."
    assert messages == [
        {"role": "user", "content": "Sample?\n\nReally?"},
        {"role": "assistant", "content": "Yes."},
    ]


def test_to_anthropic_drops_empty_messages() -> None:
    system, messages = to_anthropic(
        [
            ChatMessage.system(""),
            ChatMessage.user("ping"),
            ChatMessage.assistant(""),
            ChatMessage.user("go on"),
        ]
    )

    assert system == ""
    assert messages == [{"role": "user", "content": "ping\n\ngo on"}]


def test_empty_round_continues_with_valid_request(
    mock_claude_client: ClaudeClient, settings: Settings
) -> None:
    """A round that streams no text is followed by a request without empty turns."""
    mock_claude_client._client.messages.create.side_effect = [
        FakeStream(make_stream_events([])),
        FakeStream(make_stream_events(["done<END>"])),
    ]
    session = ContinuationChatSession.from_settings(settings, client=mock_claude_client)

    assert session.send("ping") == "done"

    calls = mock_claude_client._client.messages.create.call_args_list
    assert len(calls) == 2
    second = calls[1].kwargs["messages"]
    assert all(m["content"] for m in second)
    assert second == [
        {"role": "user", "content": "ping\n\n" + continuation_prompt("<END>")},
    ]


def test_claude_chat_model_maps_options(mock_claude_client: ClaudeClient) -> None:
    mock_claude_client._client.messages.create.return_value = FakeStream(
        make_stream_events(["ok"])
    )
    model = ClaudeChatModel(mock_claude_client, "claude-3-5-haiku-20241022")

    text = "".join(
        model.send_request(
            [ChatMessage.system("sys"), ChatMessage.user("hi")],
            RequestOptions(model_options={"max_tokens": 64, "temperature": 0.0}),
            NOT_CANCELLABLE,
        )
    )

    assert text == "ok"
    kwargs = mock_claude_client._client.messages.create.call_args.kwargs
    assert kwargs["model"] == "claude-3-5-haiku-20241022"
    assert kwargs["max_tokens"] == 64
    assert kwargs["temperature"] == 0.0
    assert kwargs["system"] == "sys"
    assert kwargs["messages"] == [{"role": "user", "content": "hi"}]


def test_anthropic_selector_filters(mock_claude_client: ClaudeClient) -> None:
    selector = AnthropicModelSelector(mock_claude_client)

    assert [m.id for m in selector.select()] == [
        "claude-sonnet-4-20250514",
        "claude-opus-4-20250514",
        "claude-3-5-haiku-20241022",
    ]
    assert [m.name for m in selector.select(ModelCriteria(family="claude-opus"))] == [
        "Claude Opus 4"
    ]
    assert selector.select(ModelCriteria(vendor="openai")) == []
    assert len(selector.select(ModelCriteria())) == 3


# ---------------------------------------------------------------------------
# Transcript, prompts, cancellation
# ---------------------------------------------------------------------------


def test_transcript_from_seed_copies() -> None:
    seed = [ChatMessage.system("sys")]
    transcript = Transcript.from_seed(seed)

    transcript.add_user("Hello")
    transcript.add_assistant("Hi")

    assert len(seed) == 1
    assert len(transcript) == 3
    assert transcript.turn_count == 1
    assert [m.content for m in transcript] == ["sys", "Hello", "Hi"]


def test_continuation_prompt_text() -> None:
    assert continuation_prompt("<END>") == (
        'continue where you left off, or end your response with "<END>" '
        "to finish the conversation."
    )
    assert render("continue.j2", end_mark="~~") == continuation_prompt("~~")


def test_cancellation_source_callbacks() -> None:
    source = CancellationTokenSource()
    calls: list[str] = []

    kept = source.token.on_cancellation_requested(lambda: calls.append("kept"))
    dropped = source.token.on_cancellation_requested(lambda: calls.append("dropped"))
    dropped.dispose()

    assert isinstance(source.token, CancellationToken)
    assert not source.token.is_cancellation_requested

    source.cancel()
    source.cancel()
    source.token.on_cancellation_requested(lambda: calls.append("late"))
    kept.dispose()

    assert source.token.is_cancellation_requested
    assert calls == ["kept", "late"]


def test_not_cancellable() -> None:
    calls: list[str] = []
    NOT_CANCELLABLE.on_cancellation_requested(lambda: calls.append("x")).dispose()

    assert not NOT_CANCELLABLE.is_cancellation_requested
    assert calls == []
