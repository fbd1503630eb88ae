"""Shared error taxonomy.

Integration packages compose these types so retry and severity behavior stays
consistent across the backend client, the AI client and the chat bridge.
"""

from __future__ import annotations

from typing import Optional


class MediaRouterError(Exception):
    """Base error for the router and its collaborators."""

    recoverable: bool = True
    severity: str = "error"

    def __init__(self, message: str, *, user_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_message = user_message


class TransientError(MediaRouterError):
    """Failure that may succeed when retried (network blips, timeouts)."""

    recoverable = True
    severity = "warning"


class PermanentError(MediaRouterError):
    """Failure that will not go away on retry (bad request, auth, config)."""

    recoverable = False
    severity = "error"
