"""Clarify entry point.

Wires the components and runs one dialog on the terminal:
  Settings -> CapabilityRegistry -> AnthropicGenerator -> TerminalReader
  -> InterruptionHandler -> ConversationLoopHandler -> run_agent

SIGINT/SIGTERM cancel the run context; the dialog unwinds with Cancelled.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from clarify.api.generator import AnthropicGenerator
from clarify.api.tools import ASK_QUESTION, CapabilityRegistry, register_ask_question
from clarify.config import Settings
from clarify.context import RunContext
from clarify.dialog import (
    AgentOptions,
    ConversationLoopHandler,
    InterruptionHandler,
    ResponseHandler,
    run_agent,
)
from clarify.errors import ClarifyError
from clarify.terminal import TerminalReader

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clarify",
        description="Answer an engine's clarifying questions until it has a complete answer",
    )
    parser.add_argument("prompt", nargs="?", help="User prompt (defaults to CLARIFY_USER_PROMPT)")
    return parser


async def run(settings: Settings, prompt: str, ctx: RunContext) -> str:
    """Build components, run one dialog, return the final answer text."""
    registry = CapabilityRegistry()
    register_ask_question(registry)

    generator = AnthropicGenerator(settings, registry)
    await generator.start()

    terminal = TerminalReader(timeout=settings.answer_timeout)
    try:
        interruptions = InterruptionHandler(generator, terminal)
        handler: ResponseHandler = interruptions
        if settings.conversation_loop:
            handler = ConversationLoopHandler(
                generator,
                settings.validation_prompt,
                interruptions,
                max_rounds=settings.max_rounds,
            )

        return await run_agent(
            ctx,
            AgentOptions(
                generator=generator,
                system_prompt=settings.system_prompt,
                user_prompt=prompt,
                tool_names=[ASK_QUESTION],
                response_handler=handler,
            ),
        )
    finally:
        terminal.close()
        await generator.close()


async def _main_async(settings: Settings, prompt: str) -> int:
    ctx = RunContext()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, ctx.cancel, f"received {sig.name}")
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    try:
        answer = await run(settings, prompt, ctx)
    except ClarifyError as e:
        logger.error("Dialog failed: %s: %s", type(e).__name__, e)
        return 1

    print(answer)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point -- parse settings, configure logging, run the dialog."""
    args = build_parser().parse_args(argv)
    settings = Settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    logger.info("Model: %s", settings.model)
    logger.info(
        "Completion loop: %s (max_rounds=%s)",
        "enabled" if settings.conversation_loop else "disabled",
        settings.max_rounds or "unbounded",
    )

    if not settings.anthropic_api_key and not settings.anthropic_auth_token:
        logger.warning(
            "Neither ANTHROPIC_API_KEY nor ANTHROPIC_AUTH_TOKEN is set -- "
            "generation will fail"
        )

    return asyncio.run(_main_async(settings, args.prompt or settings.user_prompt))


if __name__ == "__main__":
    sys.exit(main())
