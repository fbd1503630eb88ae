"""Per-event routing for inbound chat messages.

The order of the checks below is observable behavior: attachments are handled
before text, a pending selection is resolved before fresh intent parsing, and
the handler registry only sees events no command claimed.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.logging_utils import log_event
from ..integrations.chat.models import ChatEvent
from ..integrations.chat.transport import ChatTransport
from ..integrations.chat.turn_policy import addressing_for
from .commands import (
    FALLBACK_TEXT,
    ONBOARDING_TEXT,
    ROUTER_FAILURE_TEXT,
    CommandDispatcher,
)
from .cooldown import CooldownStore
from .intents import parse_intent, strip_leading_mentions
from .media_import import MediaImportFlow
from .registry import HandlerRegistry
from .selections import resolve_selection_input


class MessageRouter:
    """Routes each inbound event to at most one reply."""

    def __init__(
        self,
        *,
        transport: ChatTransport,
        commands: CommandDispatcher,
        registry: HandlerRegistry,
        media_import: MediaImportFlow,
        cooldowns: CooldownStore,
        allow_from_me: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._transport = transport
        self._commands = commands
        self._registry = registry
        self._media_import = media_import
        self._cooldowns = cooldowns
        self._allow_from_me = allow_from_me
        self._logger = logger or logging.getLogger(__name__)

    async def handle_event(self, event: ChatEvent) -> None:
        log_event(
            self._logger,
            logging.DEBUG,
            "router.event.received",
            conversation_id=event.conversation_id,
            message_id=event.message_id,
            is_group=event.is_group,
            from_me=event.from_me,
        )
        try:
            await self._route(event)
        except Exception as exc:
            log_event(
                self._logger,
                logging.ERROR,
                "router.event.failed",
                conversation_id=event.conversation_id,
                message_id=event.message_id,
                exc=exc,
            )
            await self._reply(event, ROUTER_FAILURE_TEXT)

    async def _route(self, event: ChatEvent) -> None:
        if event.from_me and not self._allow_from_me:
            log_event(
                self._logger,
                logging.DEBUG,
                "router.event.self_dropped",
                conversation_id=event.conversation_id,
                message_id=event.message_id,
            )
            return

        addressing = addressing_for(event, bot_id=self._transport.bot_id)

        if event.attachment is not None and addressing.eligible:
            text = await self._media_import.handle(
                event.conversation_id, event.attachment, caption=event.text
            )
            await self._reply(event, text)
            return

        if not addressing.eligible:
            log_event(
                self._logger,
                logging.DEBUG,
                "router.event.ignored",
                conversation_id=event.conversation_id,
                message_id=event.message_id,
                reason="not_mentioned",
            )
            return

        body = strip_leading_mentions(event.text) if event.is_group else event.text
        choice = resolve_selection_input(body)
        if choice is not None:
            reply = await self._commands.resolve_selection(event.conversation_id, choice)
            if reply is not None:
                await self._reply(event, reply.text)
                return

        if not event.text.strip():
            return

        intent = parse_intent(event.text, addressing)
        if intent.is_none:
            await self._route_unmatched(event)
            return

        reply = await self._commands.dispatch(
            intent,
            conversation_id=event.conversation_id,
            sender_id=event.sender_id,
        )
        await self._reply(event, reply.text)

    async def _route_unmatched(self, event: ChatEvent) -> None:
        if await self._registry.dispatch(self._transport, event, event.is_group):
            return
        if event.is_group:
            await self._reply(event, FALLBACK_TEXT)
            return
        if self._cooldowns.should_notify(event.sender_id):
            await self._reply(event, ONBOARDING_TEXT)
        else:
            log_event(
                self._logger,
                logging.DEBUG,
                "router.onboarding.suppressed",
                conversation_id=event.conversation_id,
                sender_id=event.sender_id,
            )

    async def _reply(self, event: ChatEvent, text: str) -> None:
        await self._transport.send_text(event.conversation_id, text)
