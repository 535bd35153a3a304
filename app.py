"""Entry point for the message relay bot.

Usage::

    python app.py

Required environment variables (see .env.example):
    TELEGRAM_BOT_TOKEN and the API key of the selected LLM_PROVIDER.
"""

import importlib
import logging
import sys

from dotenv import load_dotenv

from config import Config, load_config
from providers.base import BaseProvider
from relay import MessageRelay
from store import MessageStore
from bot import build_application


def setup_logging() -> None:
    """Configure structured logging to stdout."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=sys.stdout,
    )
    # Reduce noise from low-level HTTP libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# ── Provider factory ──────────────────────────────────────────────────────────

# Maps LLM_PROVIDER value → (module path, class name, api_key config attr)
_PROVIDER_MAP: dict[str, tuple[str, str, str]] = {
    "openai":    ("providers.openai_provider",    "OpenAIProvider",    "openai_api_key"),
    "anthropic": ("providers.anthropic_provider",  "AnthropicProvider", "anthropic_api_key"),
}


def create_provider(config: Config) -> BaseProvider:
    """Instantiate the LLM provider selected by *config*."""
    mod_path, cls_name, key_attr = _PROVIDER_MAP[config.llm_provider]
    module = importlib.import_module(mod_path)
    cls = getattr(module, cls_name)
    api_key: str = getattr(config, key_attr)
    model = getattr(config, f"{config.llm_provider}_model")
    return cls(api_key=api_key, model=model)


def main() -> None:
    """Load configuration, build the bot, and start long polling."""
    load_dotenv()
    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        config = load_config()
    except ValueError as exc:
        logging.critical("Configuration error: %s", exc)
        sys.exit(1)

    provider = create_provider(config)
    store = MessageStore(db_path=config.message_db_path)
    relay = MessageRelay(store, provider, prefix=config.trigger_prefix)
    application = build_application(config, relay)

    logger.info(
        "Bot starting: provider=%s model=%s prefix=%r db=%s",
        provider.name,
        provider.model,
        relay.prefix,
        config.message_db_path,
    )

    try:
        application.run_polling(
            allowed_updates=["message"],
            drop_pending_updates=True,
        )
    finally:
        store.close()


if __name__ == "__main__":
    main()
