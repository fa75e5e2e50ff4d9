"""Operator-facing contracts: the Interaction boundary and follow-up seeders."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol

from clarify.api.models import Response
from clarify.context import RunContext


class Interaction(Protocol):
    """Asks the operator one question and returns the answer text.

    Implementations must return promptly once ctx is cancelled (raising
    Cancelled) and may raise InteractionTimeout when the operator does
    not answer in time.
    """

    async def ask(self, ctx: RunContext, question: str, choices: Sequence[str]) -> str: ...


# Turns a resolved-but-unfinished response into the next user message
FollowUpSeeder = Callable[[RunContext, Response], Awaitable[str]]


def ask_user_seeder(interaction: Interaction) -> FollowUpSeeder:
    """Show the response text to the operator and use their reply as the seed."""

    async def seed(ctx: RunContext, response: Response) -> str:
        return await interaction.ask(ctx, response.text, ())

    return seed


async def echo_seeder(ctx: RunContext, response: Response) -> str:
    """Feed the response text back unchanged as the next user message."""
    ctx.check()
    return response.text
