"""Completion loop -- keeps the dialog going until the engine is done.

Each round first resolves all pending questions, then asks the
generator one yes/no question: is the conversation finished? If not,
a follow-up seed is turned into a new user message and generation
runs again with askQuestion available.
"""

from __future__ import annotations

import logging

from clarify.api.generator import Generator, require_capability
from clarify.api.models import Response
from clarify.context import RunContext
from clarify.dialog.interaction import FollowUpSeeder, ask_user_seeder
from clarify.dialog.interruption import InterruptionHandler
from clarify.errors import RoundLimitExceeded

logger = logging.getLogger(__name__)


class ConversationLoopHandler:
    """Gates the final answer on a completion verdict.

    Args:
        generator: engine used for verdicts and follow-up generation.
        validation_prompt: system prompt for the yes/no verdict.
        interruption_handler: resolves suspended responses each round.
        seeder: builds the next user message from an unfinished response.
            Defaults to asking the operator through the interruption
            handler's interaction.
        max_rounds: optional cap on verdict rounds. None means no cap.
    """

    def __init__(
        self,
        generator: Generator,
        validation_prompt: str,
        interruption_handler: InterruptionHandler,
        seeder: FollowUpSeeder | None = None,
        max_rounds: int | None = None,
    ) -> None:
        if max_rounds is not None and max_rounds < 1:
            raise ValueError("max_rounds must be >= 1")
        self.generator = generator
        self.validation_prompt = validation_prompt
        self.interruption_handler = interruption_handler
        self.seeder = seeder or ask_user_seeder(interruption_handler.interaction)
        self.max_rounds = max_rounds

    async def handle_response(self, ctx: RunContext, response: Response) -> Response:
        ask_question = require_capability(
            self.generator, self.interruption_handler.capability_name
        )

        rounds = 0
        while True:
            response = await self.interruption_handler.handle_response(ctx, response)
            rounds += 1

            ctx.check()
            finished = await self.generator.evaluate_bool(
                ctx, self.validation_prompt, response.history
            )
            logger.info("Round %d verdict: %s", rounds, "finished" if finished else "continue")
            if finished:
                return response

            if self.max_rounds is not None and rounds >= self.max_rounds:
                raise RoundLimitExceeded(self.max_rounds)

            seed = await self.seeder(ctx, response)
            ctx.check()
            response = await self.generator.generate(
                ctx,
                messages=response.history,
                tools=[ask_question],
                prompt=seed,
            )
