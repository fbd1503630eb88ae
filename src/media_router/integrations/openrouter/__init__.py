"""OpenRouter chat-completions client used by the assistant handler."""

from .client import OpenRouterClient, sanitize_completion
from .errors import AssistantError, AssistantTimeoutError

__all__ = [
    "AssistantError",
    "AssistantTimeoutError",
    "OpenRouterClient",
    "sanitize_completion",
]
