"""AI chat passthrough, registered as the priority handler.

Free text that no command claimed is forwarded to the completion API while a
typing indicator and an hourglass reaction show progress. Every eligible
message gets exactly one reply, including on failure.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ...core.logging_utils import log_event
from ...integrations.chat.models import ChatEvent
from ...integrations.chat.presence import DEFAULT_TYPING_INTERVAL_SECONDS, TypingIndicator
from ...integrations.chat.transport import ChatTransport
from ...integrations.chat.turn_policy import addressing_for
from ...integrations.openrouter import (
    AssistantError,
    AssistantTimeoutError,
    OpenRouterClient,
    sanitize_completion,
)
from ..intents import strip_leading_mentions
from ..registry import HandlerDescriptor

HANDLER_NAME = "assistant"
PENDING_REACTION = "⌛"
IGNORED_PREFIXES = ("!", "/", ".")

EMPTY_REPLY_TEXT = "⚠️ (empty reply)"
PERMISSION_TEXT = "🔒 Not authorized (401/403). Check the OpenRouter API key and model."
RATE_LIMIT_TEXT = "⏳ Usage limit reached (429). Try again in a few minutes."
TIMEOUT_TEXT = "⌛ The assistant timed out. Try again."
FAILURE_TEXT = "⚠️ Could not reach the assistant right now. Try again."


class AssistantHandler:
    def __init__(
        self,
        client: OpenRouterClient,
        *,
        timeout_seconds: float = 20.0,
        typing_interval_seconds: float = DEFAULT_TYPING_INTERVAL_SECONDS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._client = client
        self._timeout_seconds = timeout_seconds
        self._typing_interval_seconds = typing_interval_seconds
        self._logger = logger or logging.getLogger(__name__)

    def descriptor(self) -> HandlerDescriptor:
        return HandlerDescriptor(name=HANDLER_NAME, on_message=self.on_message, priority=True)

    async def on_message(
        self, transport: ChatTransport, event: ChatEvent, is_group: bool
    ) -> bool:
        addressing = addressing_for(event, bot_id=transport.bot_id)
        if not addressing.eligible:
            return False
        prompt = strip_leading_mentions(event.text) if is_group else event.text.strip()
        if not prompt or prompt.startswith(IGNORED_PREFIXES):
            return False

        try:
            async with TypingIndicator(
                transport,
                event.conversation_id,
                interval_seconds=self._typing_interval_seconds,
            ):
                await self._react(transport, event, PENDING_REACTION)
                try:
                    raw = await self._complete(prompt)
                finally:
                    await self._react(transport, event, "")
        except AssistantError as exc:
            log_event(
                self._logger,
                logging.WARNING,
                "assistant.request.failed",
                conversation_id=event.conversation_id,
                status_code=exc.status_code,
                exc=exc,
            )
            await transport.send_text(event.conversation_id, reply_for_error(exc))
            return True

        reply = sanitize_completion(raw)
        log_event(
            self._logger,
            logging.INFO,
            "assistant.reply.sent",
            conversation_id=event.conversation_id,
            chars=len(reply),
        )
        await transport.send_text(event.conversation_id, reply or EMPTY_REPLY_TEXT)
        return True

    async def _complete(self, prompt: str) -> str:
        try:
            return await asyncio.wait_for(
                self._client.complete(prompt), timeout=self._timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            raise AssistantTimeoutError(
                f"Completion exceeded {self._timeout_seconds}s"
            ) from exc

    async def _react(self, transport: ChatTransport, event: ChatEvent, emoji: str) -> None:
        try:
            await transport.react(event.message, emoji)
        except Exception as exc:
            log_event(
                self._logger,
                logging.DEBUG,
                "assistant.reaction.failed",
                conversation_id=event.conversation_id,
                emoji=emoji,
                exc=exc,
            )


def reply_for_error(exc: AssistantError) -> str:
    if isinstance(exc, AssistantTimeoutError):
        return TIMEOUT_TEXT
    if exc.status_code in (401, 403):
        return PERMISSION_TEXT
    if exc.status_code == 429:
        return RATE_LIMIT_TEXT
    return FAILURE_TEXT
