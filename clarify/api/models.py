"""Shared data models for the generation layer.

Content blocks are kept in Anthropic Messages format (plain dicts) so
history can be sent back to the API without conversion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

ResponseStatus = Literal["suspended", "finished"]


@dataclass(frozen=True)
class Message:
    """A single turn of conversation history."""

    role: str  # "user" or "assistant"
    content: tuple[dict[str, Any], ...]

    @classmethod
    def user_text(cls, text: str) -> Message:
        return cls(role="user", content=({"type": "text", "text": text},))

    def to_api(self) -> dict[str, Any]:
        return {"role": self.role, "content": [dict(block) for block in self.content]}


@dataclass(frozen=True)
class PendingRequest:
    """One tool_use block the engine is waiting on."""

    id: str
    name: str
    input: Any  # untyped payload, decoded by the capability


@dataclass(frozen=True)
class Answer:
    """An operator answer bound to the pending request it resolves."""

    request: PendingRequest
    value: str

    def to_block(self) -> dict[str, Any]:
        return {
            "type": "tool_result",
            "tool_use_id": self.request.id,
            "content": self.value,
        }


@dataclass(frozen=True)
class Response:
    """Result of one generation call. Superseded, never mutated."""

    message: Message
    status: ResponseStatus
    stop_reason: str = ""
    history: tuple[Message, ...] = ()  # includes `message` as the last turn
    usage: dict[str, int] | None = field(default=None, compare=False)

    @property
    def suspended(self) -> bool:
        return self.status == "suspended"

    @property
    def text(self) -> str:
        """Text blocks of the assistant turn, concatenated without separator."""
        parts = [b["text"] for b in self.message.content if b.get("type") == "text"]
        return "".join(parts)

    @property
    def pending(self) -> tuple[PendingRequest, ...]:
        """Pending requests in the order the engine emitted them.

        Empty unless the response is suspended.
        """
        if not self.suspended:
            return ()
        return tuple(
            PendingRequest(id=b.get("id", ""), name=b.get("name", ""), input=b.get("input"))
            for b in self.message.content
            if b.get("type") == "tool_use"
        )
