"""Core runtime primitives."""

from .exceptions import MediaRouterError, PermanentError, TransientError
from .logging_utils import log_event

__all__ = [
    "MediaRouterError",
    "PermanentError",
    "TransientError",
    "log_event",
]
