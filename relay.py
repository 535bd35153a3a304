"""Message classification and completion relay.

:class:`MessageRelay` is the single event path: every direct text message is
written to the message log, and messages starting with the trigger prefix are
sent to the LLM provider as a one-message conversation.  The reply goes back
through the ``reply`` callable supplied with each event.

Failures never propagate out of :meth:`MessageRelay.handle`; they are logged
and the next event is processed as usual.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from events import TEXT, ChatEvent
from providers.base import BaseProvider, CompletionError
from store import MessageStore, StoredMessage

logger = logging.getLogger(__name__)

ReplyFn = Callable[[str], Awaitable[Any]]


def is_relayable(event: ChatEvent) -> bool:
    """Return ``True`` for plain text messages sent in a one-to-one chat."""
    return event.type == TEXT and event.is_direct


def extract_prompt(body: str, prefix: str) -> str | None:
    """Return the prompt after *prefix*, or ``None`` if *body* lacks it.

    The match is case-sensitive; whitespace around the remainder is removed.
    """
    if not body.startswith(prefix):
        return None
    return body[len(prefix):].strip()


class MessageRelay:
    """Records direct text messages and relays prefixed ones to an LLM."""

    def __init__(
        self,
        store: MessageStore,
        provider: BaseProvider,
        prefix: str = "gpt:",
    ) -> None:
        self._store = store
        self._provider = provider
        self._prefix = prefix
        # Hold references to in-flight tasks so they are not garbage-collected.
        # See: https://docs.python.org/3/library/asyncio-task.html#creating-tasks
        self._tasks: set[asyncio.Task] = set()

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def pending(self) -> int:
        """Number of events still being processed."""
        return len(self._tasks)

    def submit(self, event: ChatEvent, reply: ReplyFn) -> asyncio.Task:
        """Process *event* in its own task without blocking the caller."""
        task = asyncio.create_task(self.handle(event, reply), name=f"relay-{event.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait until every submitted event has been processed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def handle(self, event: ChatEvent, reply: ReplyFn) -> None:
        """Record *event* and, if it carries the trigger prefix, answer it.

        Non-text and non-direct events are ignored entirely.
        """
        if not is_relayable(event):
            logger.debug("Ignoring %s event %s", event.type, event.id)
            return

        logger.info(
            "%d Message from %s%s: %s",
            event.timestamp,
            event.sender,
            " (self)" if event.from_me else "",
            event.body,
        )

        try:
            await self._store.record(
                StoredMessage(
                    sender=event.sender,
                    sender_name=event.sender_name,
                    content=event.body,
                    timestamp=str(event.timestamp),
                )
            )
        except Exception as exc:
            logger.error("Failed to store message %s: %s", event.id, exc, exc_info=True)

        prompt = extract_prompt(event.body, self._prefix)
        if prompt is None:
            return
        if not prompt:
            logger.info("Empty prompt in message %s; nothing to send", event.id)
            return

        await self._relay(event, prompt, reply)

    async def _relay(self, event: ChatEvent, prompt: str, reply: ReplyFn) -> None:
        try:
            text = await self._provider.complete([{"role": "user", "content": prompt}])
        except CompletionError as exc:
            logger.error(
                "Completion failed for message %s (status=%s): %s",
                event.id,
                exc.status,
                exc.detail,
            )
            return
        except Exception as exc:
            logger.error(
                "Completion failed for message %s: %s", event.id, exc, exc_info=True
            )
            return

        logger.debug("Completion for %s: %s", event.id, text)
        if not text:
            logger.warning("Empty completion for message %s; no reply sent", event.id)
            return

        try:
            await reply(text)
        except Exception as exc:
            logger.error("Failed to send reply to %s: %s", event.id, exc, exc_info=True)
