from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import ChatEvent


@dataclass(frozen=True)
class AddressingContext:
    """Addressing facts the router needs to decide whether to act on an event."""

    is_group: bool
    bot_mentioned: bool = False

    @property
    def eligible(self) -> bool:
        return not self.is_group or self.bot_mentioned


def addressing_for(event: ChatEvent, *, bot_id: Optional[str]) -> AddressingContext:
    """Build the addressing context for an event.

    Direct chats are always eligible. Group chats require the bot's own
    participant id in the event's mention list; a textual ``@name`` without a
    real mention does not count.
    """

    if not event.is_group:
        return AddressingContext(is_group=False, bot_mentioned=False)
    return AddressingContext(
        is_group=True,
        bot_mentioned=_mentions_bot(event, bot_id),
    )


def _mentions_bot(event: ChatEvent, bot_id: Optional[str]) -> bool:
    if not bot_id:
        return False
    if event.mentions_participant(bot_id):
        return True
    # Multi-device sessions report the bot as "<number>:<device>@server".
    user, _, server = bot_id.partition("@")
    bare = user.split(":", 1)[0]
    if bare and server:
        return event.mentions_participant(f"{bare}@{server}")
    return False
