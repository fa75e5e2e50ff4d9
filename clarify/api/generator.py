"""Generator -- the generation engine contract and its Anthropic implementation.

The dialog loops only see the Generator protocol. AnthropicGenerator
talks to the Anthropic Messages API with direct httpx calls (no SDK):
a tool_use stop suspends the response, every other stop finishes it.

There is no retry policy here. Any non-200 response or transport error
becomes GenerationFailure and ends the dialog.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

import httpx

from clarify.api.models import Answer, Message, Response
from clarify.api.tools import Capability, CapabilityRegistry
from clarify.config import Settings
from clarify.context import RunContext
from clarify.errors import CapabilityNotFound, GenerationFailure

logger = logging.getLogger(__name__)

# Anthropic API version header
_API_VERSION = "2023-06-01"

# Forced tool used for yes/no completion verdicts
VERDICT_TOOL: dict[str, Any] = {
    "name": "verdict",
    "description": "Report whether the conversation is finished.",
    "input_schema": {
        "type": "object",
        "properties": {
            "finished": {
                "type": "boolean",
                "description": "true if no more information is needed",
            },
        },
        "required": ["finished"],
    },
}

VERDICT_REQUEST = "Report your verdict with the verdict tool."


class Generator(Protocol):
    """What the dialog loops need from a generation engine."""

    async def generate(
        self,
        ctx: RunContext,
        *,
        messages: Sequence[Message] = (),
        tools: Sequence[Capability] = (),
        prompt: str | None = None,
        system: str | None = None,
        tool_responses: Sequence[Answer] = (),
    ) -> Response: ...

    def lookup_capability(self, name: str) -> Capability | None: ...

    async def evaluate_bool(
        self,
        ctx: RunContext,
        prompt: str,
        history: Sequence[Message],
    ) -> bool: ...


def require_capability(generator: Generator, name: str) -> Capability:
    """Resolve a capability or raise CapabilityNotFound."""
    capability = generator.lookup_capability(name)
    if capability is None:
        raise CapabilityNotFound(name)
    return capability


def assemble_history(
    messages: Sequence[Message],
    prompt: str | None = None,
    system: str | None = None,
    tool_responses: Sequence[Answer] = (),
) -> tuple[Message, ...]:
    """Build the request history for one generation call.

    Order: system turn (if given), prior messages, the prompt as a user
    turn, then all tool results together in a single user turn.
    """
    history: list[Message] = []
    if system:
        history.append(Message(role="system", content=({"type": "text", "text": system},)))
    history.extend(messages)
    if prompt:
        history.append(Message.user_text(prompt))
    if tool_responses:
        history.append(Message(
            role="user",
            content=tuple(answer.to_block() for answer in tool_responses),
        ))
    return tuple(history)


def split_system(history: Sequence[Message]) -> tuple[str, list[dict[str, Any]]]:
    """Split history into the API's system string and messages array."""
    system_parts: list[str] = []
    messages: list[dict[str, Any]] = []
    for message in history:
        if message.role == "system":
            system_parts.extend(
                b["text"] for b in message.content if b.get("type") == "text"
            )
        else:
            messages.append(message.to_api())
    return "\n\n".join(system_parts), messages


class AnthropicGenerator:
    """Generator backed by the Anthropic Messages API.

    Capabilities are resolved through a CapabilityRegistry. Each HTTP
    call is raced against the run context so cancellation is observed
    mid-request.
    """

    def __init__(self, settings: Settings, registry: CapabilityRegistry) -> None:
        self._settings = settings
        self._registry = registry
        self._http: httpx.AsyncClient | None = None

    async def start(self) -> None:
        """Initialize the httpx client with auth and timeout settings."""
        settings = self._settings

        headers: dict[str, str] = {
            "anthropic-version": _API_VERSION,
            "content-type": "application/json",
        }

        api_key = settings.anthropic_api_key or ""
        auth_token = settings.anthropic_auth_token or ""

        if auth_token:
            headers["authorization"] = f"Bearer {auth_token}"
        elif api_key:
            headers["x-api-key"] = api_key
        else:
            logger.warning(
                "Neither ANTHROPIC_API_KEY nor ANTHROPIC_AUTH_TOKEN is set -- "
                "API calls will fail"
            )

        timeout = httpx.Timeout(
            connect=settings.api_timeout_connect,
            read=settings.api_timeout_read,
            write=10.0,
            pool=10.0,
        )

        self._http = httpx.AsyncClient(
            base_url=settings.api_base_url,
            headers=headers,
            timeout=timeout,
        )
        logger.info(
            "httpx client initialized (auth: %s)",
            "Bearer token" if auth_token else "API key",
        )

    async def close(self) -> None:
        """Clean up httpx client."""
        if self._http:
            await self._http.aclose()
            self._http = None

    # ------------------------------------------------------------------
    # Generator protocol
    # ------------------------------------------------------------------

    def lookup_capability(self, name: str) -> Capability | None:
        return self._registry.lookup(name)

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
        """Run one generation call and wrap the result as a Response."""
        history = assemble_history(messages, prompt, system, tool_responses)
        system_text, api_messages = split_system(history)
        payload = self._build_api_payload(
            system_text,
            api_messages,
            tools=[t.definition() for t in tools],
        )

        data = await self._call_api(ctx, payload)

        message = Message(role="assistant", content=tuple(data.get("content") or ()))
        stop_reason = data.get("stop_reason") or ""
        status = "suspended" if stop_reason == "tool_use" else "finished"
        logger.debug("Generation finished: stop_reason=%s status=%s", stop_reason, status)
        return Response(
            message=message,
            status=status,
            stop_reason=stop_reason,
            history=history + (message,),
            usage=data.get("usage"),
        )

    async def evaluate_bool(
        self,
        ctx: RunContext,
        prompt: str,
        history: Sequence[Message],
    ) -> bool:
        """Ask a closed yes/no question over the history via a forced tool call."""
        _, api_messages = split_system(history)
        api_messages.append(Message.user_text(VERDICT_REQUEST).to_api())
        payload = self._build_api_payload(
            prompt,
            api_messages,
            tools=[VERDICT_TOOL],
            tool_choice={"type": "tool", "name": VERDICT_TOOL["name"]},
        )

        data = await self._call_api(ctx, payload)

        for block in data.get("content") or ():
            if block.get("type") == "tool_use" and block.get("name") == VERDICT_TOOL["name"]:
                finished = (block.get("input") or {}).get("finished")
                if isinstance(finished, bool):
                    return finished
                raise GenerationFailure(f"verdict is not a boolean: {finished!r}")
        raise GenerationFailure("model returned no verdict")

    # ------------------------------------------------------------------
    # API call
    # ------------------------------------------------------------------

    def _build_api_payload(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Build Anthropic Messages API request payload."""
        payload: dict[str, Any] = {
            "model": self._settings.model,
            "max_tokens": self._settings.max_tokens,
            "messages": messages,
        }
        if system_prompt:
            payload["system"] = system_prompt
        if tools:
            payload["tools"] = tools
        if tool_choice:
            payload["tool_choice"] = tool_choice
        return payload

    async def _call_api(self, ctx: RunContext, payload: dict[str, Any]) -> dict[str, Any]:
        """POST the payload, abandoning it if the context is cancelled."""
        if not self._http:
            raise GenerationFailure("httpx client not initialized -- call start() first")
        ctx.check()
        return await ctx.race(self._post(payload))

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Single Messages API request. Raises GenerationFailure on any error."""
        assert self._http is not None
        try:
            response = await self._http.post("/v1/messages", json=payload)
        except httpx.TimeoutException as e:
            raise GenerationFailure(f"API request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise GenerationFailure(f"HTTP error: {e}") from e

        if response.status_code == 200:
            try:
                data = response.json()
            except ValueError as e:
                raise GenerationFailure(
                    f"API returned invalid JSON: {response.text[:200]}"
                ) from e
            if not isinstance(data, dict):
                raise GenerationFailure(
                    f"API returned unexpected body type: {type(data).__name__}"
                )
            return data

        try:
            error_data = response.json()
            error_type = error_data.get("error", {}).get("type", "unknown")
            error_msg = error_data.get("error", {}).get("message", "unknown error")
        except ValueError:
            error_type = "http_error"
            error_msg = f"HTTP {response.status_code}: {response.text[:500]}"

        logger.error("API error %d (%s): %s", response.status_code, error_type, error_msg)
        raise GenerationFailure(
            f"Anthropic API error ({response.status_code}): {error_type} - {error_msg}"
        )
