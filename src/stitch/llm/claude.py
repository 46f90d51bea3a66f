"""Claude models exposed through the chat model and selector contracts."""

from __future__ import annotations

from typing import Iterable, Iterator, Sequence

from stitch.llm.cancellation import CancellationToken
from stitch.llm.client import ClaudeClient
from stitch.llm.models import ChatMessage, ChatModel, ChatRole, ModelCriteria, RequestOptions


def _describe(model_id: str) -> tuple[str, str, str]:
    """Split a model id into (display name, family, version).

    ``claude-3-5-haiku-20241022`` -> ``("Claude Haiku 3.5", "claude-haiku", "20241022")``
    """
    parts = model_id.split("-")
    version = parts.pop() if parts and parts[-1].isdigit() and len(parts[-1]) == 8 else ""
    words = [p for p in parts if not p.isdigit()]
    numbers = [p for p in parts if p.isdigit()]
    name = " ".join(w.capitalize() for w in words)
    if numbers:
        name = f"{name} {'.'.join(numbers)}"
    return name, "-".join(words), version


def to_anthropic(messages: Sequence[ChatMessage]) -> tuple[str, list[dict]]:
    """Convert a transcript into Anthropic's ``system`` string and message list.

    System messages are folded into the system prompt. Messages with empty
    content are dropped. Consecutive turns of the same role are merged.
    """
    system_parts: list[str] = []
    converted: list[dict] = []
    for message in messages:
        if not message.content:
            continue
        if message.role is ChatRole.SYSTEM:
            system_parts.append(message.content)
        elif converted and converted[-1]["role"] == message.role.value:
            converted[-1]["content"] += "\n\n" + message.content
        else:
            converted.append(message.to_dict())
    return "\n\n".join(system_parts), converted


class ClaudeChatModel:
    """A single Claude model bound to a :class:`ClaudeClient`."""

    vendor = "anthropic"

    def __init__(self, client: ClaudeClient, model_id: str) -> None:
        self._client = client
        self.id = model_id
        self.name, self.family, self.version = _describe(model_id)

    def send_request(
        self,
        messages: Sequence[ChatMessage],
        options: RequestOptions,
        cancellation: CancellationToken,
    ) -> Iterator[str]:
        system, converted = to_anthropic(messages)
        model_options = options.model_options
        return self._client.generate_streaming(
            system=system,
            messages=converted,
            model=self.id,
            max_tokens=model_options.get("max_tokens"),
            temperature=model_options.get("temperature"),
            cancellation=cancellation,
        )

    def __repr__(self) -> str:
        return f"ClaudeChatModel({self.id!r})"


class AnthropicModelSelector:
    """Offers one :class:`ClaudeChatModel` per configured model id."""

    def __init__(self, client: ClaudeClient, model_ids: Iterable[str] | None = None) -> None:
        ids = list(model_ids) if model_ids is not None else client.available_models()
        self._models = [ClaudeChatModel(client, model_id) for model_id in ids]

    def select(self, criteria: ModelCriteria | None = None) -> list[ChatModel]:
        if criteria is None:
            return list(self._models)
        return [m for m in self._models if criteria.matches(m)]
