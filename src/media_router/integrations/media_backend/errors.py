from __future__ import annotations

from typing import Optional

from ...core.exceptions import MediaRouterError, PermanentError, TransientError


class MediaBackendError(MediaRouterError):
    """Base media backend error."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        user_message: Optional[str] = None,
    ) -> None:
        if user_message is None:
            user_message = "The media server did not respond correctly."
        super().__init__(message, user_message=user_message)
        self.status_code = status_code


class MediaBackendTransientError(MediaBackendError, TransientError):
    """The request never reached the backend (connection refused, connect timeout)."""


class MediaBackendPermanentError(MediaBackendError, PermanentError):
    """The backend answered with an error status or an unreadable body."""

    recoverable = PermanentError.recoverable
    severity = PermanentError.severity
