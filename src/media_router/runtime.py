"""Wires configuration into a running router and its webhook app."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import FastAPI

from .core.config import RouterConfig
from .core.logging_utils import log_event
from .integrations.chat.dispatcher import ChatDispatcher
from .integrations.media_backend import MediaBackendClient
from .integrations.openrouter import OpenRouterClient
from .integrations.whatsapp import (
    WhatsAppBridgeError,
    WhatsAppBridgeTransport,
    build_webhook_app,
)
from .router.commands import CommandDispatcher
from .router.cooldown import CooldownStore
from .router.handlers import build_default_handlers
from .router.media_import import MediaImportFlow
from .router.registry import HandlerContext, HandlerRegistry, load_plugin_descriptors
from .router.selections import PendingSelectionStore
from .router.service import MessageRouter


@dataclass
class RouterRuntime:
    config: RouterConfig
    transport: WhatsAppBridgeTransport
    backend: MediaBackendClient
    assistant_client: Optional[OpenRouterClient]
    registry: HandlerRegistry
    router: MessageRouter
    dispatcher: ChatDispatcher
    logger: logging.Logger

    async def start(self) -> None:
        """Prepare the media directory and learn the paired bot id.

        A missing media directory that cannot be created aborts startup. An
        unreachable bridge only logs a warning and the configured identity, if
        any, stays in use for group mention checks.
        """

        await asyncio.to_thread(self.config.media_dir.mkdir, parents=True, exist_ok=True)
        try:
            await self.transport.refresh_identity()
        except WhatsAppBridgeError as exc:
            log_event(
                self.logger,
                logging.WARNING,
                "router.identity.unavailable",
                bridge_url=self.config.bridge.base_url,
                status_code=exc.status_code,
                exc=exc,
            )
        log_event(
            self.logger,
            logging.INFO,
            "router.started",
            backend_url=self.config.backend.base_url,
            bridge_url=self.config.bridge.base_url,
            bot_id=self.transport.bot_id,
            handlers=self.registry.names,
            allow_from_me=self.config.allow_from_me,
        )

    async def close(self) -> None:
        await self.transport.close()
        await self.backend.close()
        if self.assistant_client is not None:
            await self.assistant_client.close()
        log_event(self.logger, logging.INFO, "router.stopped")


def build_runtime(
    config: RouterConfig,
    *,
    logger: Optional[logging.Logger] = None,
    bridge_transport: Optional[httpx.AsyncBaseTransport] = None,
    backend_transport: Optional[httpx.AsyncBaseTransport] = None,
    assistant_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> RouterRuntime:
    """Build every collaborator from config; the ``*_transport`` hooks are for tests."""

    log = logger or logging.getLogger("media_router")
    transport = WhatsAppBridgeTransport(
        base_url=config.bridge.base_url,
        timeout_seconds=config.bridge.timeout_seconds,
        transport=bridge_transport,
    )
    backend = MediaBackendClient(
        base_url=config.backend.base_url,
        timeout_seconds=config.backend.timeout_seconds,
        transport=backend_transport,
    )
    assistant_client: Optional[OpenRouterClient] = None
    if config.assistant.enabled and config.assistant.api_key:
        assistant_client = OpenRouterClient(
            api_key=config.assistant.api_key,
            model=config.assistant.model,
            base_url=config.assistant.base_url,
            referrer=config.assistant.referrer,
            title=config.assistant.title,
            timeout_seconds=config.assistant.timeout_seconds,
            transport=assistant_transport,
        )

    registry = HandlerRegistry(logger=log)
    registry.register_all(
        build_default_handlers(
            assistant_client,
            assistant_timeout_seconds=config.assistant.timeout_seconds,
            logger=log,
        )
    )
    registry.register_all(
        load_plugin_descriptors(
            config.handler_plugins,
            HandlerContext(config=config, backend=backend, logger=log),
        )
    )

    router = MessageRouter(
        transport=transport,
        commands=CommandDispatcher(backend, PendingSelectionStore(), logger=log),
        registry=registry,
        media_import=MediaImportFlow(backend, config.media_dir, logger=log),
        cooldowns=CooldownStore(config.onboarding_cooldown_seconds),
        allow_from_me=config.allow_from_me,
        logger=log,
    )
    dispatcher = ChatDispatcher(router.handle_event, logger=log)
    return RouterRuntime(
        config=config,
        transport=transport,
        backend=backend,
        assistant_client=assistant_client,
        registry=registry,
        router=router,
        dispatcher=dispatcher,
        logger=log,
    )


def build_app(runtime: RouterRuntime) -> FastAPI:
    return build_webhook_app(
        runtime.dispatcher,
        startup_hooks=(runtime.start,),
        shutdown_hooks=(runtime.close,),
        logger=runtime.logger,
    )
