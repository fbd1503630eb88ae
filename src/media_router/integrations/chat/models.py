"""Normalized chat-domain models used by adapter-layer components.

This module lives in the adapter layer (`integrations/chat`) and intentionally
contains platform-agnostic event and reference types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ChatMessageRef:
    """Reference to a concrete message inside a conversation."""

    conversation_id: str
    message_id: str
    from_me: bool = False


@dataclass(frozen=True)
class ChatAttachment:
    """Attachment payload carried by an inbound message."""

    mime_type: Optional[str]
    data: bytes = field(repr=False)
    file_name: Optional[str] = None

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ChatEvent:
    """Inbound message event normalized by a chat adapter."""

    conversation_id: str
    sender_id: str
    message_id: str
    text: str = ""
    is_group: bool = False
    mentions: frozenset[str] = field(default_factory=frozenset)
    attachment: Optional[ChatAttachment] = None
    from_me: bool = False

    @property
    def message(self) -> ChatMessageRef:
        return ChatMessageRef(
            conversation_id=self.conversation_id,
            message_id=self.message_id,
            from_me=self.from_me,
        )

    def mentions_participant(self, participant_id: Optional[str]) -> bool:
        if not participant_id:
            return False
        return participant_id in self.mentions
