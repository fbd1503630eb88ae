from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ...core.logging_utils import log_event
from .transport import ChatTransport, PresenceState

DEFAULT_TYPING_INTERVAL_SECONDS = 6.0

logger = logging.getLogger(__name__)


class TypingIndicator:
    """Keeps a "typing..." presence alive while a slow call is in flight.

    Use as ``async with TypingIndicator(transport, conversation_id):``. The
    heartbeat task is always cancelled and the presence reset to ``paused``
    on exit, whether the body succeeded, raised, or was cancelled.
    """

    def __init__(
        self,
        transport: ChatTransport,
        conversation_id: str,
        *,
        interval_seconds: float = DEFAULT_TYPING_INTERVAL_SECONDS,
    ) -> None:
        self._transport = transport
        self._conversation_id = conversation_id
        self._interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def __aenter__(self) -> "TypingIndicator":
        await self._send("composing")
        self._task = asyncio.create_task(self._heartbeat())
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.stop()

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._send("paused")

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            await self._send("composing")

    async def _send(self, state: PresenceState) -> None:
        try:
            await self._transport.send_presence(self._conversation_id, state)
        except Exception as exc:
            log_event(
                logger,
                logging.DEBUG,
                "chat.presence.failed",
                conversation_id=self._conversation_id,
                state=state,
                exc=exc,
            )
