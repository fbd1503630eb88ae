"""Platform-agnostic chat adapter contracts (adapter layer)."""

from .dispatcher import ChatDispatcher, DispatchResult, RecentMessageIds
from .media import audio_extension_for_mime, is_supported_audio, normalize_mime_type
from .models import ChatAttachment, ChatEvent, ChatMessageRef
from .presence import TypingIndicator
from .transport import ChatTransport, PresenceState
from .turn_policy import AddressingContext, addressing_for

__all__ = [
    "AddressingContext",
    "ChatAttachment",
    "ChatDispatcher",
    "ChatEvent",
    "ChatMessageRef",
    "ChatTransport",
    "DispatchResult",
    "PresenceState",
    "RecentMessageIds",
    "TypingIndicator",
    "addressing_for",
    "audio_extension_for_mime",
    "is_supported_audio",
    "normalize_mime_type",
]
