"""Dialog layer -- suspend/resume question loops.

Agent run -> initial generation -> ConversationLoopHandler
(-> InterruptionHandler -> completion verdict -> follow-up) -> final answer.
"""

from clarify.dialog.agent import AgentOptions, ResponseHandler, run_agent
from clarify.dialog.conversation import ConversationLoopHandler
from clarify.dialog.interaction import (
    FollowUpSeeder,
    Interaction,
    ask_user_seeder,
    echo_seeder,
)
from clarify.dialog.interruption import InterruptionHandler

__all__ = [
    "AgentOptions",
    "ConversationLoopHandler",
    "FollowUpSeeder",
    "Interaction",
    "InterruptionHandler",
    "ResponseHandler",
    "ask_user_seeder",
    "echo_seeder",
    "run_agent",
]
