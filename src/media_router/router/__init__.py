"""Message routing: intents, pending selections, commands and handlers."""

from .commands import FALLBACK_TEXT, HELP_TEXT, CommandDispatcher, CommandReply
from .cooldown import CooldownStore
from .intents import Intent, PlayTarget, classify_play_argument, parse_intent
from .media_import import MediaImportFlow
from .registry import (
    HandlerContext,
    HandlerDescriptor,
    HandlerRegistrationError,
    HandlerRegistry,
    load_plugin_descriptors,
)
from .selections import (
    Candidate,
    PendingSelection,
    PendingSelectionStore,
    resolve_selection_input,
)
from .service import MessageRouter

__all__ = [
    "FALLBACK_TEXT",
    "HELP_TEXT",
    "Candidate",
    "CommandDispatcher",
    "CommandReply",
    "CooldownStore",
    "HandlerContext",
    "HandlerDescriptor",
    "HandlerRegistrationError",
    "HandlerRegistry",
    "Intent",
    "MediaImportFlow",
    "MessageRouter",
    "PendingSelection",
    "PendingSelectionStore",
    "PlayTarget",
    "classify_play_argument",
    "load_plugin_descriptors",
    "parse_intent",
    "resolve_selection_input",
]
