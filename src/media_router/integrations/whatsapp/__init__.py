"""WhatsApp bridge adapter: outbound HTTP transport and inbound webhook."""

from .bridge import WhatsAppBridgeTransport
from .errors import (
    InvalidEventPayload,
    WhatsAppBridgeError,
    WhatsAppBridgePermanentError,
    WhatsAppBridgeTransientError,
)
from .payloads import InboundEventPayload, event_from_payload, is_group_conversation
from .webhook import build_webhook_app

__all__ = [
    "InboundEventPayload",
    "InvalidEventPayload",
    "WhatsAppBridgeError",
    "WhatsAppBridgePermanentError",
    "WhatsAppBridgeTransientError",
    "WhatsAppBridgeTransport",
    "build_webhook_app",
    "event_from_payload",
    "is_group_conversation",
]
