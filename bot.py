"""Telegram session wiring for the message relay.

Handlers follow the signature required by ``python-telegram-bot`` v21+.
The shared :class:`~relay.MessageRelay` lives in ``context.bot_data`` so the
handler stays a stateless function; each update is converted to a
:class:`~events.ChatEvent` and handed to the relay as its own task.
"""

import logging

from telegram import Update
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from config import Config
from events import from_telegram
from relay import MessageRelay

logger = logging.getLogger(__name__)


async def message_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle every new message: convert it and submit it to the relay."""
    message = update.effective_message
    if message is None:
        return

    relay: MessageRelay = context.bot_data["relay"]
    event = from_telegram(message, self_id=context.bot.id)
    logger.debug("Messagetype: %s", event.type)
    relay.submit(event, message.reply_text)


async def _on_ready(app: Application) -> None:
    logger.info("Client is ready! Logged in as @%s", app.bot.username)


async def _on_stop(app: Application) -> None:
    relay: MessageRelay | None = app.bot_data.get("relay")
    if relay is not None and relay.pending:
        logger.info("Waiting for %d in-flight message(s)", relay.pending)
        await relay.drain()


# ── Application factory ───────────────────────────────────────────────────────

def build_application(config: Config, relay: MessageRelay) -> Application:
    """Build and configure the Telegram :class:`Application`.

    Registers the message handler and stores the relay in ``bot_data`` so the
    handler can access it without globals.  Updates are processed
    concurrently, so a slow completion never holds up the next message.

    Args:
        config: Validated application configuration.
        relay:  Message relay wired to the store and LLM provider.

    Returns:
        A fully configured :class:`Application` ready to call
        :meth:`~Application.run_polling`.
    """
    app: Application = (
        Application.builder()
        .token(config.telegram_bot_token)
        .concurrent_updates(True)
        .post_init(_on_ready)
        .post_stop(_on_stop)
        .build()
    )

    app.bot_data["relay"] = relay

    app.add_handler(MessageHandler(filters.UpdateType.MESSAGE, message_handler))

    return app
