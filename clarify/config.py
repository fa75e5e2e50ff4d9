"""Settings via pydantic-settings with CLARIFY_ env prefix.

Credential fields use validation_alias to read the same unprefixed
env vars (ANTHROPIC_API_KEY, ANTHROPIC_AUTH_TOKEN) other Anthropic
tooling uses, so a single .env file drives everything.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = """You are a helpful assistant that asks clarifying questions to gather information.

CRITICAL INSTRUCTIONS:
1. You MUST use the askQuestion tool for EVERY question - never ask questions directly in your response
2. Continue asking questions until you have ALL necessary information
3. If the user's answer is unclear or not in the provided options, ask a follow-up question using the askQuestion tool
4. If the user provides an unexpected answer, acknowledge it and ask another clarifying question
5. Only provide your final response when you have complete information about:
   - The recipients (age, gender, interests)
   - Budget constraints
   - Any special preferences or restrictions

Remember: ALWAYS use the askQuestion tool to interact with the user. Never stop until you have gathered all necessary details."""

DEFAULT_USER_PROMPT = "Please help with Christmas presents for children 8 and 11 years old children"

DEFAULT_VALIDATION_PROMPT = (
    "Review the conversation so far. Answer true only if the assistant has "
    "gathered all the information it needs and has given a complete final "
    "answer. Answer false if anything is still missing or unclear."
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CLARIFY_", env_file=".env")

    log_level: str = "info"

    # Credentials use unprefixed aliases
    anthropic_api_key: str = Field("", validation_alias="ANTHROPIC_API_KEY")
    # Dual auth: auth_token (Bearer) takes precedence over api_key (x-api-key)
    anthropic_auth_token: str = Field("", validation_alias="ANTHROPIC_AUTH_TOKEN")

    # LLM
    model: str = "claude-sonnet-4-5-20250514"
    max_tokens: int = 4096
    api_base_url: str = "https://api.anthropic.com"
    api_timeout_connect: int = 10  # seconds
    api_timeout_read: int = 120  # seconds

    # Dialog
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    user_prompt: str = DEFAULT_USER_PROMPT
    validation_prompt: str = DEFAULT_VALIDATION_PROMPT
    conversation_loop: bool = True  # gate final answers on a completion verdict
    answer_timeout: float = 30.0  # seconds to wait for one console answer
    max_rounds: int | None = None  # None = no cap on completion rounds

    @model_validator(mode="after")
    def _validate_limits(self) -> "Settings":
        if self.answer_timeout <= 0:
            raise ValueError("answer_timeout must be > 0")
        if self.max_rounds is not None and self.max_rounds < 1:
            raise ValueError("max_rounds must be >= 1 (or unset for no cap)")
        return self
