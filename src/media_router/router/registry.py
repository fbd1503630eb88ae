"""Message handler registry with a single priority slot.

Handlers are registered from an explicit manifest at startup. On dispatch the
priority handler runs first and may claim the event; otherwise every other
handler runs in registration order, each isolated from the others' failures.
"""

from __future__ import annotations

import importlib
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from ..core.logging_utils import log_event
from ..integrations.chat.models import ChatEvent
from ..integrations.chat.transport import ChatTransport

MessageCallback = Callable[[ChatTransport, ChatEvent, bool], Awaitable[Any]]


class HandlerRegistrationError(Exception):
    """Raised when a handler cannot be registered or loaded."""


@dataclass(frozen=True)
class HandlerDescriptor:
    name: str
    on_message: MessageCallback
    priority: bool = False


@dataclass(frozen=True)
class HandlerContext:
    """Dependencies handed to plugin factories listed in ``handlers.plugins``."""

    config: Any
    backend: Any
    logger: logging.Logger


HandlerFactory = Callable[[HandlerContext], HandlerDescriptor]


class HandlerRegistry:
    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._priority: Optional[HandlerDescriptor] = None
        self._handlers: list[HandlerDescriptor] = []
        self._names: set[str] = set()

    @property
    def priority_handler(self) -> Optional[HandlerDescriptor]:
        return self._priority

    @property
    def names(self) -> list[str]:
        ordered = [self._priority.name] if self._priority is not None else []
        ordered.extend(handler.name for handler in self._handlers)
        return ordered

    def __len__(self) -> int:
        return len(self._handlers) + (1 if self._priority is not None else 0)

    def register(self, descriptor: Any) -> bool:
        """Register a handler; returns False when the descriptor was ignored.

        Descriptors without a callable ``on_message`` are logged and skipped.
        A duplicate name or a second priority handler raises
        `HandlerRegistrationError`.
        """

        name = getattr(descriptor, "name", None)
        on_message = getattr(descriptor, "on_message", None)
        if not name or not callable(on_message):
            log_event(
                self._logger,
                logging.WARNING,
                "registry.handler.rejected",
                handler=name or repr(descriptor),
                reason="missing on_message",
            )
            return False
        if name in self._names:
            raise HandlerRegistrationError(f"Handler {name!r} is already registered")
        if getattr(descriptor, "priority", False):
            if self._priority is not None:
                raise HandlerRegistrationError(
                    f"Handler {name!r} cannot be priority; "
                    f"{self._priority.name!r} already is"
                )
            self._priority = descriptor
        else:
            self._handlers.append(descriptor)
        self._names.add(name)
        log_event(
            self._logger,
            logging.INFO,
            "registry.handler.registered",
            handler=name,
            priority=bool(getattr(descriptor, "priority", False)),
        )
        return True

    def register_all(self, descriptors: Iterable[Any]) -> None:
        for descriptor in descriptors:
            self.register(descriptor)

    async def dispatch(
        self, transport: ChatTransport, event: ChatEvent, is_group: bool
    ) -> bool:
        """Offer the event to handlers; return True if any reported it handled."""

        if self._priority is not None:
            if await self._invoke(self._priority, transport, event, is_group):
                return True
        handled = False
        for descriptor in self._handlers:
            if await self._invoke(descriptor, transport, event, is_group):
                handled = True
        return handled

    async def _invoke(
        self,
        descriptor: HandlerDescriptor,
        transport: ChatTransport,
        event: ChatEvent,
        is_group: bool,
    ) -> bool:
        try:
            result = descriptor.on_message(transport, event, is_group)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            log_event(
                self._logger,
                logging.ERROR,
                "registry.handler.failed",
                handler=descriptor.name,
                conversation_id=event.conversation_id,
                message_id=event.message_id,
                exc=exc,
            )
            return False
        return bool(result)


def resolve_import_path(path: str) -> Any:
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise HandlerRegistrationError(
            f"Plugin path {path!r} must look like 'module:attribute'"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise HandlerRegistrationError(f"Cannot import plugin module {module_name!r}") from exc
    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise HandlerRegistrationError(
                f"Plugin module {module_name!r} has no attribute {attribute!r}"
            ) from exc
    return target


def load_plugin_descriptors(
    paths: Iterable[str], context: HandlerContext
) -> list[HandlerDescriptor]:
    """Resolve ``module:attribute`` entries to descriptors.

    An entry may name a descriptor directly or a factory that takes a
    `HandlerContext` and returns one.
    """

    descriptors: list[HandlerDescriptor] = []
    for path in paths:
        target: Union[HandlerDescriptor, HandlerFactory, Any] = resolve_import_path(path)
        if not isinstance(target, HandlerDescriptor) and callable(target):
            target = target(context)
        if not isinstance(target, HandlerDescriptor):
            raise HandlerRegistrationError(
                f"Plugin {path!r} did not resolve to a HandlerDescriptor"
            )
        log_event(context.logger, logging.INFO, "registry.plugin.loaded", path=path)
        descriptors.append(target)
    return descriptors
