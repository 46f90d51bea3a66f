"""Append-only transcript of a multi-round conversation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator

from stitch.llm.models import ChatMessage


@dataclass
class Transcript:
    """Ordered messages sent to the model on every round.

    Seed messages are copied in on creation; rounds only ever append.
    """

    messages: list[ChatMessage] = field(default_factory=list)
    seed_length: int = 0

    @classmethod
    def from_seed(cls, seed: Iterable[ChatMessage]) -> Transcript:
        messages = list(seed)
        return cls(messages=messages, seed_length=len(messages))

    def add_user(self, content: str) -> ChatMessage:
        message = ChatMessage.user(content)
        self.messages.append(message)
        return message

    def add_assistant(self, content: str) -> ChatMessage:
        message = ChatMessage.assistant(content)
        self.messages.append(message)
        return message

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self.messages)

    @property
    def turn_count(self) -> int:
        return (len(self.messages) - self.seed_length) // 2
