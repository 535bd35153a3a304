"""Configuration loading and validation for the message relay bot.

All settings are read from environment variables.  Call :func:`load_config`
once at startup; it raises ``ValueError`` with a descriptive message on any
misconfiguration so the process exits immediately rather than failing later.
"""

import os
from dataclasses import dataclass
from typing import Literal

LLMProvider = Literal["openai", "anthropic"]


@dataclass(frozen=True)
class Config:
    """Immutable application configuration."""

    telegram_bot_token: str
    llm_provider: LLMProvider
    openai_api_key: str | None
    openai_model: str
    anthropic_api_key: str | None
    anthropic_model: str
    trigger_prefix: str             # case-sensitive, e.g. "gpt:"
    message_db_path: str            # path to SQLite file for the message log


def load_config() -> Config:
    """Load and validate configuration from environment variables.

    Raises:
        ValueError: If any required variable is missing or invalid.
    """
    token = _require("TELEGRAM_BOT_TOKEN")

    raw_provider = os.getenv("LLM_PROVIDER", "openai").strip().lower()
    if raw_provider not in ("openai", "anthropic"):
        raise ValueError(
            f"LLM_PROVIDER must be 'openai' or 'anthropic', got: {raw_provider!r}. "
            "Set LLM_PROVIDER=openai or LLM_PROVIDER=anthropic."
        )
    provider: LLMProvider = raw_provider  # type: ignore[assignment]

    openai_key = os.getenv("OPENAI_API_KEY") or None
    anthropic_key = os.getenv("ANTHROPIC_API_KEY") or None

    if provider == "openai" and not openai_key:
        raise ValueError(
            "OPENAI_API_KEY must be set when LLM_PROVIDER=openai."
        )
    if provider == "anthropic" and not anthropic_key:
        raise ValueError(
            "ANTHROPIC_API_KEY must be set when LLM_PROVIDER=anthropic."
        )

    prefix = os.getenv("TRIGGER_PREFIX", "gpt:")
    if not prefix.strip():
        raise ValueError("TRIGGER_PREFIX must not be empty.")

    return Config(
        telegram_bot_token=token,
        llm_provider=provider,
        openai_api_key=openai_key,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-3.5-turbo"),
        anthropic_api_key=anthropic_key,
        anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-3-5-haiku-latest"),
        trigger_prefix=prefix,
        message_db_path=os.getenv("MESSAGE_DB_PATH", "dump.db"),
    )


def _require(name: str) -> str:
    """Return the value of *name* or raise ``ValueError`` if unset/empty."""
    val = os.getenv(name, "").strip()
    if not val:
        raise ValueError(f"Required environment variable {name!r} is not set.")
    return val
