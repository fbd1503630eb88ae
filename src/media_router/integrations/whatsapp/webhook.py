"""Inbound webhook the WhatsApp bridge posts message events to."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from ...core.logging_utils import log_event
from ..chat.dispatcher import DispatchResult
from ..chat.models import ChatEvent
from .errors import InvalidEventPayload
from .payloads import InboundEventPayload, event_from_payload

LifecycleHook = Callable[[], Awaitable[None]]


class EventSink(Protocol):
    async def dispatch(self, event: ChatEvent) -> DispatchResult: ...

    async def close(self) -> None: ...


class EventAccepted(BaseModel):
    status: str
    message_id: str


class HealthResponse(BaseModel):
    status: str


def build_webhook_app(
    dispatcher: EventSink,
    *,
    startup_hooks: Sequence[LifecycleHook] = (),
    shutdown_hooks: Sequence[LifecycleHook] = (),
    logger: Optional[logging.Logger] = None,
) -> FastAPI:
    """Build the FastAPI app exposing ``POST /events`` and ``GET /health``.

    Events are handed to the dispatcher and acknowledged with 202 before any
    routing happens. The dispatcher is closed before the shutdown hooks run.
    """

    log = logger or logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        for hook in startup_hooks:
            await hook()
        try:
            yield
        finally:
            await dispatcher.close()
            for hook in shutdown_hooks:
                try:
                    await hook()
                except Exception as exc:
                    log_event(log, logging.WARNING, "webhook.shutdown.failed", exc=exc)

    app = FastAPI(lifespan=lifespan)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/events", status_code=202, response_model=EventAccepted)
    async def receive_event(payload: InboundEventPayload) -> EventAccepted:
        try:
            event = event_from_payload(payload)
        except InvalidEventPayload as exc:
            log_event(
                log,
                logging.WARNING,
                "webhook.event.invalid",
                conversation_id=payload.conversation_id,
                exc=exc,
            )
            raise HTTPException(status_code=400, detail=str(exc)) from None
        result = await dispatcher.dispatch(event)
        return EventAccepted(status=result.status, message_id=result.message_id)

    return app
