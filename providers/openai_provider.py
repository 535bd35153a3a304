"""OpenAI provider wrapper.

Uses the official ``openai`` async client.  Each call makes exactly one
request; SDK failures are re-raised as :class:`CompletionError` carrying the
HTTP status (if any) so the caller can log it.
"""

import logging

from openai import AsyncOpenAI, APIConnectionError, APIError, APIStatusError

from providers.base import BaseProvider, CompletionError, Message

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    """Async wrapper around the OpenAI Chat Completions API."""

    def __init__(self, api_key: str, model: str) -> None:
        """Initialise with credentials and model selection.

        Args:
            api_key: OpenAI API key.
            model:   Chat model identifier (e.g. ``"gpt-3.5-turbo"``).
        """
        self._client = AsyncOpenAI(api_key=api_key)
        self._model = model

    @property
    def name(self) -> str:
        """Return ``"openai"``."""
        return "openai"

    @property
    def model(self) -> str:
        """Return the configured model identifier."""
        return self._model

    async def complete(self, messages: list[Message], system: str | None = None) -> str:
        """Call the OpenAI Chat Completions API once.

        Args:
            messages: Conversation (oldest first).
            system:   Optional system prompt, sent as a leading system message.

        Returns:
            The content of the first choice, or ``""`` if it has none.

        Raises:
            CompletionError: On connection or API errors.
        """
        payload: list[dict[str, str]] = []
        if system:
            payload.append({"role": "system", "content": system})
        payload += [{"role": m["role"], "content": m["content"]} for m in messages]

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=payload,  # type: ignore[arg-type]
            )
        except APIStatusError as exc:
            raise CompletionError(_describe(exc), status=exc.status_code) from exc
        except APIConnectionError as exc:
            raise CompletionError(str(exc)) from exc
        except APIError as exc:
            raise CompletionError(str(exc)) from exc

        if not response.choices:
            logger.warning("OpenAI returned no choices for model %s", self._model)
            return ""
        return response.choices[0].message.content or ""


def _describe(exc: APIStatusError) -> str:
    # Prefer the response body, which holds the API's own error message.
    if exc.body:
        return str(exc.body)
    return str(exc)
