"""Chat messages and the model/selector contracts sessions talk to."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from stitch.llm.cancellation import CancellationToken


class ChatRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """A single role-tagged message in a transcript."""

    role: ChatRole
    content: str

    @classmethod
    def system(cls, content: str) -> ChatMessage:
        return cls(ChatRole.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(ChatRole.USER, content)

    @classmethod
    def assistant(cls, content: str) -> ChatMessage:
        return cls(ChatRole.ASSISTANT, content)

    def to_dict(self) -> dict:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class ModelCriteria:
    """Selection criteria; unset fields match any model."""

    vendor: str | None = None
    family: str | None = None
    id: str | None = None
    version: str | None = None

    def matches(self, model: ChatModel) -> bool:
        for f in fields(self):
            wanted = getattr(self, f.name)
            if wanted is not None and getattr(model, f.name, None) != wanted:
                return False
        return True


@dataclass(frozen=True)
class RequestOptions:
    """Options forwarded untouched to the model on every request."""

    model_options: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class ChatModel(Protocol):
    name: str
    id: str
    vendor: str
    family: str
    version: str

    def send_request(
        self,
        messages: Sequence[ChatMessage],
        options: RequestOptions,
        cancellation: CancellationToken,
    ) -> Iterable[str]:
        """Send the transcript and return the response as text fragments."""
        ...


class ModelSelector(Protocol):
    def select(self, criteria: ModelCriteria | None = None) -> list[ChatModel]:
        """Return models matching ``criteria``, or every model when it is None."""
        ...


class StaticModelSelector:
    """Selects from a fixed list of models."""

    def __init__(self, models: Iterable[ChatModel]) -> None:
        self._models = list(models)

    def select(self, criteria: ModelCriteria | None = None) -> list[ChatModel]:
        if criteria is None:
            return list(self._models)
        return [m for m in self._models if criteria.matches(m)]
