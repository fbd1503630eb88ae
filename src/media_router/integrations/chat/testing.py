"""Testing utilities for chat transport contracts (adapter-layer test support)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import ChatAttachment, ChatEvent, ChatMessageRef
from .transport import PresenceState


@dataclass(frozen=True)
class SentText:
    conversation_id: str
    text: str


class FakeChatTransport:
    """In-memory transport used to validate router behavior in tests."""

    def __init__(self, *, bot_id: Optional[str] = "5511900000000@s.whatsapp.net") -> None:
        self._bot_id = bot_id
        self._next_message_id = 1
        self.sent: list[SentText] = []
        self.presence: list[tuple[str, PresenceState]] = []
        self.reactions: list[tuple[ChatMessageRef, str]] = []

    @property
    def bot_id(self) -> Optional[str]:
        return self._bot_id

    async def send_text(self, conversation_id: str, text: str) -> Optional[str]:
        self.sent.append(SentText(conversation_id=conversation_id, text=text))
        message_id = f"out-{self._next_message_id}"
        self._next_message_id += 1
        return message_id

    async def send_presence(self, conversation_id: str, state: PresenceState) -> None:
        self.presence.append((conversation_id, state))

    async def react(self, message: ChatMessageRef, emoji: str) -> None:
        self.reactions.append((message, emoji))

    def texts(self, conversation_id: Optional[str] = None) -> list[str]:
        return [
            item.text
            for item in self.sent
            if conversation_id is None or item.conversation_id == conversation_id
        ]


_event_counter = 0


def make_event(
    text: str = "",
    *,
    conversation_id: str = "5511988887777@s.whatsapp.net",
    sender_id: Optional[str] = None,
    message_id: Optional[str] = None,
    is_group: Optional[bool] = None,
    mentions: tuple[str, ...] = (),
    attachment: Optional[ChatAttachment] = None,
    from_me: bool = False,
) -> ChatEvent:
    """Build a ChatEvent with sensible defaults for tests."""

    global _event_counter
    _event_counter += 1
    group = conversation_id.endswith("@g.us") if is_group is None else is_group
    return ChatEvent(
        conversation_id=conversation_id,
        sender_id=sender_id or ("5511977776666@s.whatsapp.net" if group else conversation_id),
        message_id=message_id or f"msg-{_event_counter}",
        text=text,
        is_group=group,
        mentions=frozenset(mentions),
        attachment=attachment,
        from_me=from_me,
    )
