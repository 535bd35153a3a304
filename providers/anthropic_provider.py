"""Anthropic provider wrapper.

Uses the official ``anthropic`` async client.  Each call makes exactly one
request; SDK failures are re-raised as :class:`CompletionError`.
"""

import logging
from typing import Any

from anthropic import AsyncAnthropic, APIConnectionError, APIError, APIStatusError

from providers.base import BaseProvider, CompletionError, Message

logger = logging.getLogger(__name__)

_MAX_TOKENS = 4096


class AnthropicProvider(BaseProvider):
    """Async wrapper around the Anthropic Messages API."""

    def __init__(self, api_key: str, model: str) -> None:
        """Initialise with credentials and model selection.

        Args:
            api_key: Anthropic API key.
            model:   Model identifier (e.g. ``"claude-3-5-haiku-latest"``).
        """
        self._client = AsyncAnthropic(api_key=api_key)
        self._model = model

    @property
    def name(self) -> str:
        """Return ``"anthropic"``."""
        return "anthropic"

    @property
    def model(self) -> str:
        """Return the configured model identifier."""
        return self._model

    async def complete(self, messages: list[Message], system: str | None = None) -> str:
        """Call the Anthropic Messages API once.

        Returns:
            The text of the first content block, or ``""`` if there is none.

        Raises:
            CompletionError: On connection or API errors.
        """
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": _MAX_TOKENS,
            "messages": [
                {"role": m["role"], "content": m["content"]} for m in messages
            ],
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self._client.messages.create(**kwargs)
        except APIStatusError as exc:
            detail = str(exc.body) if exc.body else str(exc)
            raise CompletionError(detail, status=exc.status_code) from exc
        except APIConnectionError as exc:
            raise CompletionError(str(exc)) from exc
        except APIError as exc:
            raise CompletionError(str(exc)) from exc

        if not response.content:
            logger.warning("Anthropic returned no content for model %s", self._model)
            return ""
        return getattr(response.content[0], "text", "") or ""
