"""Transport-neutral chat events and the Telegram adapter that builds them.

The router in relay.py only ever sees :class:`ChatEvent`, which keeps the
classification rule independent of ``python-telegram-bot`` types.
"""

from dataclasses import dataclass

from telegram import Message
from telegram.constants import ChatType

TEXT = "text"
IMAGE = "image"
VIDEO = "video"
AUDIO = "audio"
VOICE = "voice"
DOCUMENT = "document"
STICKER = "sticker"
LOCATION = "location"
CONTACT = "contact"
UNKNOWN = "unknown"


@dataclass(frozen=True)
class ChatEvent:
    """A single inbound chat notification."""

    id: str
    body: str
    type: str
    timestamp: int               # Unix seconds
    sender: str
    recipient: str
    chat_id: int
    sender_name: str | None = None
    from_me: bool = False
    is_direct: bool = True


# Checked in order; the first populated attribute decides the type.
_ATTACHMENT_TYPES: tuple[tuple[str, str], ...] = (
    ("photo", IMAGE),
    ("video", VIDEO),
    ("voice", VOICE),
    ("audio", AUDIO),
    ("document", DOCUMENT),
    ("sticker", STICKER),
    ("location", LOCATION),
    ("contact", CONTACT),
)


def classify(message: Message) -> str:
    """Return the content type of *message*, e.g. ``"text"`` or ``"image"``."""
    for attr, kind in _ATTACHMENT_TYPES:
        if getattr(message, attr, None):
            return kind
    if message.text is not None:
        return TEXT
    return UNKNOWN


def from_telegram(message: Message, *, self_id: int) -> ChatEvent:
    """Build a :class:`ChatEvent` from a Telegram *message*.

    Args:
        message: The incoming (or self-sent) Telegram message.
        self_id: User id of the session's own account, used as the recipient
                 and to detect self-sent messages.
    """
    user = message.from_user
    sender_id = user.id if user else message.chat.id
    return ChatEvent(
        id=f"{message.chat.id}:{message.message_id}",
        body=message.text or message.caption or "",
        type=classify(message),
        timestamp=int(message.date.timestamp()),
        sender=str(sender_id),
        recipient=str(self_id),
        chat_id=message.chat.id,
        sender_name=user.full_name if user else None,
        from_me=sender_id == self_id,
        is_direct=message.chat.type == ChatType.PRIVATE,
    )
