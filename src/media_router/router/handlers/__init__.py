"""Built-in message handlers consulted when no command matched."""

from __future__ import annotations

import logging
from typing import Optional

from ...integrations.openrouter import OpenRouterClient
from ..registry import HandlerDescriptor
from .assistant import AssistantHandler


def build_default_handlers(
    assistant_client: Optional[OpenRouterClient],
    *,
    assistant_timeout_seconds: float = 20.0,
    logger: Optional[logging.Logger] = None,
) -> list[HandlerDescriptor]:
    """Return the built-in handler manifest in registration order.

    The assistant is only included when a completion client is configured.
    """

    descriptors: list[HandlerDescriptor] = []
    if assistant_client is not None:
        handler = AssistantHandler(
            assistant_client,
            timeout_seconds=assistant_timeout_seconds,
            logger=logger,
        )
        descriptors.append(handler.descriptor())
    return descriptors


__all__ = ["AssistantHandler", "build_default_handlers"]
