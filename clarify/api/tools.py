"""Capability registry and the askQuestion capability.

Provides:
- Capability: a named tool the engine may invoke, plus respond() to
  bind an operator answer to the engine's tool_use request
- CapabilityRegistry: registers capabilities, looks them up by name
- QuestionInput: the askQuestion payload, decoded fail-closed from the
  untyped tool_use input map

askQuestion never runs locally. Invoking it suspends generation and
the dialog loops collect the answer from the operator instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from clarify.api.models import Answer, PendingRequest
from clarify.errors import MalformedPendingRequest

logger = logging.getLogger(__name__)

ASK_QUESTION = "askQuestion"
ASK_QUESTION_DESCRIPTION = "use this to ask the user any clarifying question"


# ---------------------------------------------------------------------------
# askQuestion payload
# ---------------------------------------------------------------------------


class QuestionInput(BaseModel):
    """A question to ask the user and optional multiple choice answers."""

    model_config = ConfigDict(strict=True)

    question: str = Field(description="A clarifying question")
    choices: list[str] = Field(
        default_factory=list,
        description="the choices to display to the user",
    )

    @field_validator("choices", mode="before")
    @classmethod
    def _null_choices(cls, value: Any) -> Any:
        # Engines sometimes send an explicit null for "no choices"
        return [] if value is None else value

    @classmethod
    def decode(cls, raw: Any) -> QuestionInput:
        """Decode an untyped tool_use input into a QuestionInput.

        Raises MalformedPendingRequest instead of guessing when the
        payload is not a mapping or does not match the schema.
        """
        if not isinstance(raw, dict):
            raise MalformedPendingRequest(f"unexpected input type: {type(raw).__name__}")
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise MalformedPendingRequest(f"invalid question payload: {e}") from e


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Capability:
    """A tool definition the engine can call by name."""

    name: str
    description: str
    input_schema: dict[str, Any]

    def definition(self) -> dict[str, Any]:
        """Tool definition in Anthropic API format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def respond(self, request: PendingRequest, value: str) -> Answer:
        """Bind an answer to one of this capability's pending requests."""
        if request.name != self.name:
            raise MalformedPendingRequest(
                f"cannot answer '{request.name}' request with '{self.name}'"
            )
        return Answer(request=request, value=value)


def ask_question_capability() -> Capability:
    """Build the askQuestion capability with its schema from QuestionInput."""
    return Capability(
        name=ASK_QUESTION,
        description=ASK_QUESTION_DESCRIPTION,
        input_schema=QuestionInput.model_json_schema(),
    )


class CapabilityRegistry:
    """Registers capabilities and resolves them by name."""

    def __init__(self) -> None:
        self._capabilities: dict[str, Capability] = {}

    def register(self, capability: Capability) -> None:
        """Register a capability, replacing any earlier one with the same name."""
        if capability.name in self._capabilities:
            logger.warning("Replacing registered capability %s", capability.name)
        self._capabilities[capability.name] = capability

    def lookup(self, name: str) -> Capability | None:
        return self._capabilities.get(name)

    def names(self) -> list[str]:
        return list(self._capabilities)

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

    def __len__(self) -> int:
        return len(self._capabilities)


def register_ask_question(registry: CapabilityRegistry) -> Capability:
    """Register askQuestion on the registry and return it."""
    capability = ask_question_capability()
    registry.register(capability)
    return capability
