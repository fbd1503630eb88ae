from __future__ import annotations

from typing import Optional

from ...core.exceptions import MediaRouterError, PermanentError, TransientError


class WhatsAppBridgeError(MediaRouterError):
    """Base error for calls to the WhatsApp bridge sidecar."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        user_message: Optional[str] = None,
    ) -> None:
        super().__init__(message, user_message=user_message)
        self.status_code = status_code


class WhatsAppBridgeTransientError(WhatsAppBridgeError, TransientError):
    """Bridge unreachable or answering 5xx; safe to retry."""


class WhatsAppBridgePermanentError(WhatsAppBridgeError, PermanentError):
    """Bridge rejected the request."""

    recoverable = PermanentError.recoverable
    severity = PermanentError.severity


class InvalidEventPayload(WhatsAppBridgeError, PermanentError):
    """Inbound webhook payload cannot be normalized into a chat event."""

    recoverable = PermanentError.recoverable
    severity = PermanentError.severity
