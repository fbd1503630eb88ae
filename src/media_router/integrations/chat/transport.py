"""Generic outbound chat transport contract (adapter layer).

This module belongs to `integrations/chat` and defines the delivery interface
used by the router and its handlers.
"""

from __future__ import annotations

from typing import Literal, Optional, Protocol, runtime_checkable

from .models import ChatMessageRef

PresenceState = Literal["composing", "paused", "available", "unavailable"]


@runtime_checkable
class ChatTransport(Protocol):
    """Outbound delivery contract implemented by platform transports."""

    @property
    def bot_id(self) -> Optional[str]:
        """Participant id of the bot account, used for mention detection."""

    async def send_text(self, conversation_id: str, text: str) -> Optional[str]:
        """Send text to a conversation and return the new message id if known."""

    async def send_presence(self, conversation_id: str, state: PresenceState) -> None:
        """Update the bot's presence (typing indicator) in a conversation."""

    async def react(self, message: ChatMessageRef, emoji: str) -> None:
        """React to a message; an empty emoji removes the reaction."""
