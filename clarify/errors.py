"""Error taxonomy for clarify dialogs.

Nothing here is recovered locally: every error aborts the current
dialog and reaches the caller unchanged.
"""

from __future__ import annotations


class ClarifyError(Exception):
    """Base class for all dialog failures."""


class CapabilityNotFound(ClarifyError):
    """A named capability could not be resolved by the generator."""

    def __init__(self, name: str) -> None:
        super().__init__(f"{name} tool not found")
        self.name = name


class Cancelled(ClarifyError):
    """The surrounding run context was cancelled."""


class InteractionTimeout(ClarifyError):
    """The operator did not answer within the allowed time."""


class InteractionClosed(ClarifyError):
    """The operator's input stream ended before an answer arrived."""


class MalformedPendingRequest(ClarifyError):
    """A pending request payload does not decode into a question."""


class GenerationFailure(ClarifyError):
    """Opaque upstream failure from the generation engine."""


class RoundLimitExceeded(ClarifyError):
    """The completion loop ran out of its configured rounds."""

    def __init__(self, max_rounds: int) -> None:
        super().__init__(f"conversation not finished after {max_rounds} rounds")
        self.max_rounds = max_rounds
