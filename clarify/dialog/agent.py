"""Agent runner -- issues the initial generation and hands off to a handler."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from clarify.api.generator import Generator, require_capability
from clarify.api.models import Response
from clarify.api.tools import ASK_QUESTION
from clarify.context import RunContext

logger = logging.getLogger(__name__)


class ResponseHandler(Protocol):
    """Turns the initial response into the final one (possibly after questions)."""

    async def handle_response(self, ctx: RunContext, response: Response) -> Response: ...


@dataclass
class AgentOptions:
    """Configuration for one agent run."""

    generator: Generator
    system_prompt: str = ""
    user_prompt: str = ""
    tool_names: Sequence[str] = field(default_factory=lambda: [ASK_QUESTION])
    response_handler: ResponseHandler | None = None


async def run_agent(ctx: RunContext, options: AgentOptions) -> str:
    """Run the agent and return the final answer text.

    Every named tool must resolve before the first generation call;
    a missing one raises CapabilityNotFound. Without a response handler
    the initial response text is returned as-is.
    """
    tools = [require_capability(options.generator, name) for name in options.tool_names]

    ctx.check()
    logger.info("Starting agent run with tools: %s", ", ".join(t.name for t in tools) or "none")
    response = await options.generator.generate(
        ctx,
        prompt=options.user_prompt,
        system=options.system_prompt,
        tools=tools,
    )

    if options.response_handler is None:
        return response.text

    response = await options.response_handler.handle_response(ctx, response)
    return response.text
