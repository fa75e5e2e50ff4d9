"""Shared fixtures: a scripted generator and a recording interaction."""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from typing import Any

import pytest

from clarify.api.generator import assemble_history
from clarify.api.models import Answer, Message, Response
from clarify.api.tools import Capability, ask_question_capability
from clarify.context import RunContext


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------


def make_text_response(text: str) -> Response:
    """A finished response carrying a single text block."""
    return Response(
        message=Message(role="assistant", content=({"type": "text", "text": text},)),
        status="finished",
        stop_reason="end_turn",
    )


def make_question_block(
    question: str,
    choices: list[str] | None = None,
    tool_id: str = "toolu_q1",
    name: str = "askQuestion",
) -> dict[str, Any]:
    payload: dict[str, Any] = {"question": question}
    if choices is not None:
        payload["choices"] = choices
    return {"type": "tool_use", "id": tool_id, "name": name, "input": payload}


def make_suspended_response(*blocks: dict[str, Any]) -> Response:
    """A suspended response carrying the given tool_use blocks."""
    return Response(
        message=Message(role="assistant", content=tuple(blocks)),
        status="suspended",
        stop_reason="tool_use",
    )


# ---------------------------------------------------------------------------
# Mock generator
# ---------------------------------------------------------------------------


@dataclasses.dataclass
class GenerateCall:
    """Arguments captured from one generate() call."""

    messages: tuple[Message, ...]
    tools: tuple[Capability, ...]
    prompt: str | None
    system: str | None
    tool_responses: tuple[Answer, ...]


class MockGenerator:
    """Replays scripted responses and verdicts, recording every call.

    Each returned response gets a history snapshot built the same way
    the real generator builds it, so loops can feed it back.
    """

    def __init__(
        self,
        responses: Sequence[Response] = (),
        capabilities: Sequence[Capability] | None = None,
        verdicts: Sequence[bool] = (),
    ) -> None:
        self.responses = list(responses)
        self.verdicts = list(verdicts)
        caps = [ask_question_capability()] if capabilities is None else capabilities
        self.capabilities = {c.name: c for c in caps}
        self.calls: list[GenerateCall] = []
        self.verdict_calls: list[tuple[str, tuple[Message, ...]]] = []
        self.lookups: list[str] = []
        self.events: list[str] = []  # shared timeline with RecordingInteraction

    def lookup_capability(self, name: str) -> Capability | None:
        self.lookups.append(name)
        return self.capabilities.get(name)

    async def generate(
        self,
        ctx: RunContext,
        *,
        messages: Sequence[Message] = (),
        tools: Sequence[Capability] = (),
        prompt: str | None = None,
        system: str | None = None,
        tool_responses: Sequence[Answer] = (),
    ) -> Response:
        ctx.check()
        self.calls.append(GenerateCall(
            messages=tuple(messages),
            tools=tuple(tools),
            prompt=prompt,
            system=system,
            tool_responses=tuple(tool_responses),
        ))
        self.events.append("generate")
        if not self.responses:
            raise AssertionError("no more mock responses available")
        scripted = self.responses.pop(0)
        history = assemble_history(messages, prompt, system, tool_responses)
        return dataclasses.replace(scripted, history=history + (scripted.message,))

    async def evaluate_bool(
        self,
        ctx: RunContext,
        prompt: str,
        history: Sequence[Message],
    ) -> bool:
        ctx.check()
        self.verdict_calls.append((prompt, tuple(history)))
        self.events.append("verdict")
        if not self.verdicts:
            raise AssertionError("no more mock verdicts available")
        return self.verdicts.pop(0)


# ---------------------------------------------------------------------------
# Recording interaction
# ---------------------------------------------------------------------------


class RecordingInteraction:
    """Answers from a script (list or question->answer map), recording questions."""

    def __init__(
        self,
        answers: Sequence[str] | dict[str, str] = (),
        events: list[str] | None = None,
    ) -> None:
        self.answers = answers if isinstance(answers, dict) else list(answers)
        self.asked: list[tuple[str, tuple[str, ...]]] = []
        self.events = events if events is not None else []

    async def ask(self, ctx: RunContext, question: str, choices: Sequence[str]) -> str:
        ctx.check()
        self.asked.append((question, tuple(choices)))
        self.events.append(f"ask:{question}")
        if isinstance(self.answers, dict):
            return self.answers[question]
        if not self.answers:
            raise AssertionError(f"unexpected question: {question}")
        return self.answers.pop(0)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def ctx() -> RunContext:
    return RunContext()
