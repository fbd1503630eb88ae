"""Platform-agnostic event dispatcher with per-conversation queueing.

Events for one conversation are handled strictly in arrival order by a single
worker task; distinct conversations drain concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict, deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque, Dict, Optional

from ...core.logging_utils import log_event
from .models import ChatEvent

DEFAULT_DEDUPE_WINDOW = 512

DispatchHandler = Callable[[ChatEvent], Awaitable[None]]


@dataclass(frozen=True)
class DispatchResult:
    """Dispatch attempt result."""

    status: str
    conversation_id: str
    message_id: str


class RecentMessageIds:
    """Bounded memory of recently seen message ids."""

    def __init__(self, capacity: int = DEFAULT_DEDUPE_WINDOW) -> None:
        self._capacity = max(1, capacity)
        self._seen: OrderedDict[tuple[str, str], None] = OrderedDict()

    def check_and_remember(self, conversation_id: str, message_id: str) -> bool:
        """Return True the first time a message id is seen."""

        key = (conversation_id, message_id)
        if key in self._seen:
            self._seen.move_to_end(key)
            return False
        self._seen[key] = None
        while len(self._seen) > self._capacity:
            self._seen.popitem(last=False)
        return True


class ChatDispatcher:
    """Dispatches chat events with per-conversation ordering."""

    def __init__(
        self,
        handler: DispatchHandler,
        *,
        logger: Optional[logging.Logger] = None,
        dedupe: Optional[RecentMessageIds] = None,
    ) -> None:
        self._handler = handler
        self._logger = logger or logging.getLogger(__name__)
        self._dedupe = dedupe if dedupe is not None else RecentMessageIds()
        self._lock = asyncio.Lock()
        self._queues: Dict[str, Deque[ChatEvent]] = {}
        self._workers: Dict[str, asyncio.Task[None]] = {}
        self._active_handlers = 0
        self._idle_event = asyncio.Event()
        self._idle_event.set()

    async def dispatch(self, event: ChatEvent) -> DispatchResult:
        log_event(
            self._logger,
            logging.DEBUG,
            "chat.dispatch.received",
            conversation_id=event.conversation_id,
            message_id=event.message_id,
            sender_id=event.sender_id,
            is_group=event.is_group,
            has_attachment=event.attachment is not None,
        )
        if event.message_id and not self._dedupe.check_and_remember(
            event.conversation_id, event.message_id
        ):
            log_event(
                self._logger,
                logging.INFO,
                "chat.dispatch.duplicate",
                conversation_id=event.conversation_id,
                message_id=event.message_id,
            )
            return DispatchResult(
                status="duplicate",
                conversation_id=event.conversation_id,
                message_id=event.message_id,
            )

        await self._enqueue(event)
        return DispatchResult(
            status="queued",
            conversation_id=event.conversation_id,
            message_id=event.message_id,
        )

    async def wait_idle(self) -> None:
        """Wait until no queued or active handlers remain."""

        await self._idle_event.wait()

    async def close(self) -> None:
        async with self._lock:
            workers = list(self._workers.values())
        for task in workers:
            task.cancel()
        if workers:
            await asyncio.gather(*workers, return_exceptions=True)
        async with self._lock:
            self._queues.clear()
            self._workers.clear()
            self._active_handlers = 0
            self._idle_event.set()

    async def _enqueue(self, event: ChatEvent) -> None:
        conversation_id = event.conversation_id
        async with self._lock:
            queue = self._queues.get(conversation_id)
            if queue is None:
                queue = deque()
                self._queues[conversation_id] = queue
            queue.append(event)
            self._idle_event.clear()
            if conversation_id not in self._workers:
                self._workers[conversation_id] = asyncio.create_task(
                    self._drain_conversation(conversation_id)
                )
            pending = len(queue)
        log_event(
            self._logger,
            logging.DEBUG,
            "chat.dispatch.queued",
            conversation_id=conversation_id,
            message_id=event.message_id,
            pending=pending,
        )

    async def _drain_conversation(self, conversation_id: str) -> None:
        try:
            while True:
                async with self._lock:
                    queue = self._queues.get(conversation_id)
                    if not queue:
                        self._queues.pop(conversation_id, None)
                        self._workers.pop(conversation_id, None)
                        self._mark_idle_if_drained()
                        return
                    event = queue.popleft()
                    self._active_handlers += 1
                try:
                    await self._run_handler(event)
                finally:
                    async with self._lock:
                        self._active_handlers -= 1
                        self._mark_idle_if_drained()
        finally:
            async with self._lock:
                self._workers.pop(conversation_id, None)
                self._mark_idle_if_drained()

    def _mark_idle_if_drained(self) -> None:
        if self._active_handlers == 0 and not self._workers and not self._queues:
            self._idle_event.set()

    async def _run_handler(self, event: ChatEvent) -> None:
        try:
            await self._handler(event)
        except Exception as exc:
            log_event(
                self._logger,
                logging.WARNING,
                "chat.dispatch.handler.failed",
                conversation_id=event.conversation_id,
                message_id=event.message_id,
                exc=exc,
            )
