"""Abstract base class for LLM provider wrappers."""

from abc import ABC, abstractmethod
from typing import TypedDict


class Message(TypedDict):
    """A single chat message as expected by OpenAI / Anthropic APIs."""

    role: str    # "user" or "assistant"
    content: str


class CompletionError(RuntimeError):
    """Raised when a completion request fails.

    ``status`` carries the HTTP status code for API errors and is ``None``
    for connection-level failures.
    """

    def __init__(self, detail: str, status: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status = status


class BaseProvider(ABC):
    """Common interface that all LLM provider wrappers must implement."""

    @abstractmethod
    async def complete(self, messages: list[Message], system: str | None = None) -> str:
        """Generate a reply for *messages*.

        Args:
            messages: Ordered list of messages (oldest first).
            system:   Optional system-level instruction for the model.

        Returns:
            The text of the first returned response.

        Raises:
            CompletionError: On any network or API failure.
        """
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider identifier, e.g. ``"openai"``."""
        ...

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier in use, e.g. ``"gpt-3.5-turbo"``."""
        ...
