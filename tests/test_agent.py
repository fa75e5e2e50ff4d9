"""Tests for run_agent -- initial generation plus response handling."""

import pytest

from clarify.context import RunContext
from clarify.dialog.agent import AgentOptions, run_agent
from clarify.dialog.conversation import ConversationLoopHandler
from clarify.dialog.interruption import InterruptionHandler
from clarify.errors import CapabilityNotFound, Cancelled
from tests.conftest import (
    MockGenerator,
    RecordingInteraction,
    make_question_block,
    make_suspended_response,
    make_text_response,
)


class TestRunAgent:

    @pytest.mark.asyncio
    async def test_no_handler_returns_initial_text(self, ctx):
        gen = MockGenerator(responses=[make_text_response("Just an answer")])

        result = await run_agent(ctx, AgentOptions(generator=gen, user_prompt="hi"))

        assert result == "Just an answer"
        assert len(gen.calls) == 1

    @pytest.mark.asyncio
    async def test_initial_call_carries_prompt_system_and_tools(self, ctx):
        gen = MockGenerator(responses=[make_text_response("ok")])

        await run_agent(ctx, AgentOptions(
            generator=gen,
            system_prompt="Ask clarifying questions.",
            user_prompt="Gift ideas please",
        ))

        call = gen.calls[0]
        assert call.prompt == "Gift ideas please"
        assert call.system == "Ask clarifying questions."
        assert [t.name for t in call.tools] == ["askQuestion"]
        assert call.messages == ()
        assert call.tool_responses == ()

    @pytest.mark.asyncio
    async def test_single_interrupt_flow(self, ctx):
        """AI asks one question, user answers, AI gives final recommendation."""
        gen = MockGenerator(responses=[
            make_suspended_response(
                make_question_block("What gender are the children?", ["Boy", "Girl", "Both"])
            ),
            make_text_response("Based on your answer, I recommend LEGO sets and science kits."),
        ])
        interaction = RecordingInteraction(["Boy"])

        result = await run_agent(ctx, AgentOptions(
            generator=gen,
            response_handler=InterruptionHandler(gen, interaction),
        ))

        assert "recommend" in result
        assert len(interaction.asked) == 1
        assert len(gen.calls) == 2

    @pytest.mark.asyncio
    async def test_system_prompt_survives_resumption(self, ctx):
        """Resumption history still starts with the system turn."""
        gen = MockGenerator(responses=[
            make_suspended_response(make_question_block("Budget?")),
            make_text_response("done"),
        ])

        await run_agent(ctx, AgentOptions(
            generator=gen,
            system_prompt="Be thorough.",
            user_prompt="Help",
            response_handler=InterruptionHandler(gen, RecordingInteraction(["$20"])),
        ))

        resumption = gen.calls[1]
        assert resumption.messages[0].role == "system"
        assert resumption.messages[1].role == "user"
        assert resumption.messages[2].role == "assistant"

    @pytest.mark.asyncio
    async def test_conversation_loop_two_rounds(self, ctx):
        """Verdicts [false, true] -> 2 generation calls and 2 verdicts in total."""
        gen = MockGenerator(
            responses=[
                make_text_response("Do you have a budget in mind?"),
                make_text_response("Here are three gifts under $50."),
            ],
            verdicts=[False, True],
        )
        interaction = RecordingInteraction(["Under $50"])
        handler = ConversationLoopHandler(
            generator=gen,
            validation_prompt="Is finished?",
            interruption_handler=InterruptionHandler(gen, interaction),
        )

        result = await run_agent(ctx, AgentOptions(
            generator=gen,
            user_prompt="Gift ideas",
            response_handler=handler,
        ))

        assert result == "Here are three gifts under $50."
        assert len(gen.calls) == 2
        assert len(gen.verdict_calls) == 2

    @pytest.mark.asyncio
    async def test_missing_tool(self, ctx):
        """Unregistered tool name -> CapabilityNotFound before any generation."""
        gen = MockGenerator(capabilities=[])

        with pytest.raises(CapabilityNotFound, match="askQuestion tool not found"):
            await run_agent(ctx, AgentOptions(generator=gen))

        assert gen.calls == []

    @pytest.mark.asyncio
    async def test_cancelled_context(self):
        """Cancelled before start -> Cancelled, no generation, no questions."""
        ctx = RunContext()
        ctx.cancel()
        gen = MockGenerator(responses=[
            make_suspended_response(make_question_block("What gender?", ["Boy", "Girl"])),
        ])
        interaction = RecordingInteraction()

        with pytest.raises(Cancelled):
            await run_agent(ctx, AgentOptions(
                generator=gen,
                response_handler=InterruptionHandler(gen, interaction),
            ))

        assert interaction.asked == []
        assert gen.calls == []
