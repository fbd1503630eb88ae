from __future__ import annotations

from typing import Optional

from ...core.exceptions import MediaRouterError, TransientError


class AssistantError(MediaRouterError):
    """Completion request failed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        user_message: Optional[str] = None,
    ) -> None:
        super().__init__(message, user_message=user_message)
        self.status_code = status_code


class AssistantTimeoutError(AssistantError, TransientError):
    """Completion request exceeded its time budget."""
