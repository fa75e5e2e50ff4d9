"""Resolution loop -- drives a suspended response to a finished one.

A suspended response carries one or more askQuestion requests. Each
round asks the operator every request in order, then resumes
generation once with all answers. Nothing is resumed with a partial
answer set: any failure mid-round discards the round and propagates.
"""

from __future__ import annotations

import logging

from clarify.api.generator import Generator, require_capability
from clarify.api.models import Answer, Response
from clarify.api.tools import ASK_QUESTION, QuestionInput
from clarify.context import RunContext
from clarify.dialog.interaction import Interaction
from clarify.errors import MalformedPendingRequest

logger = logging.getLogger(__name__)


class InterruptionHandler:
    """Answers askQuestion interrupts until generation stops suspending."""

    def __init__(
        self,
        generator: Generator,
        interaction: Interaction,
        capability_name: str = ASK_QUESTION,
    ) -> None:
        self.generator = generator
        self.interaction = interaction
        self.capability_name = capability_name

    async def handle_response(self, ctx: RunContext, response: Response) -> Response:
        """Resolve every suspension round and return the first finished response.

        Raises CapabilityNotFound before doing anything if askQuestion is
        not registered. Cancelled, MalformedPendingRequest, interaction
        errors and GenerationFailure all propagate unchanged.
        """
        ask_question = require_capability(self.generator, self.capability_name)

        rounds = 0
        while response.suspended:
            ctx.check()
            rounds += 1

            # multiple interrupts can arrive at once; answer them all, in order
            answers: list[Answer] = []
            for request in response.pending:
                ctx.check()
                if request.name != ask_question.name:
                    raise MalformedPendingRequest(
                        f"unexpected pending request for '{request.name}'"
                    )
                question = QuestionInput.decode(request.input)
                logger.debug(
                    "Round %d: asking %r (%d choices)",
                    rounds,
                    question.question,
                    len(question.choices),
                )
                value = await self.interaction.ask(ctx, question.question, question.choices)
                answers.append(ask_question.respond(request, value))

            if not answers:
                raise MalformedPendingRequest("suspended response carries no pending requests")

            ctx.check()
            logger.info("Resuming generation with %d answer(s)", len(answers))
            response = await self.generator.generate(
                ctx,
                messages=response.history,
                tools=[ask_question],
                tool_responses=answers,
            )

        logger.debug("Response resolved after %d round(s)", rounds)
        return response
