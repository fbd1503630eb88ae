"""HTTP client for the remote media-control backend."""

from .client import (
    EnqueueResult,
    LibraryItem,
    MediaBackendClient,
    QueueEntry,
    VideoResult,
)
from .errors import (
    MediaBackendError,
    MediaBackendPermanentError,
    MediaBackendTransientError,
)

__all__ = [
    "EnqueueResult",
    "LibraryItem",
    "MediaBackendClient",
    "MediaBackendError",
    "MediaBackendPermanentError",
    "MediaBackendTransientError",
    "QueueEntry",
    "VideoResult",
]
