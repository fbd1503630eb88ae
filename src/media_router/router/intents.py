"""Pattern-based intent extraction for chat text.

Direct chats go through an ordered rule list (first match wins, bare URLs
last). Group chats only act on messages that mention the bot, and the first
token after the mentions is the command name.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal, Optional, Pattern

from ..integrations.chat.turn_policy import AddressingContext

IntentName = Literal[
    "play", "pause", "next", "volume", "queue", "clear", "label", "help", "none"
]
INTENT_NAMES: tuple[str, ...] = (
    "play",
    "pause",
    "next",
    "volume",
    "queue",
    "clear",
    "label",
    "help",
    "none",
)

PlayTargetKind = Literal["url", "local", "search"]


@dataclass(frozen=True)
class Intent:
    name: IntentName
    argument: str = ""

    @property
    def is_none(self) -> bool:
        return self.name == "none"


NO_INTENT = Intent(name="none")


@dataclass(frozen=True)
class PlayTarget:
    kind: PlayTargetKind
    value: str


COMMAND_ALIASES: dict[str, IntentName] = {
    "play": "play",
    "tocar": "play",
    "soltar": "play",
    "pause": "pause",
    "pausar": "pause",
    "parar": "pause",
    "next": "next",
    "pular": "next",
    "próxima": "next",
    "proxima": "next",
    "volume": "volume",
    "vol": "volume",
    "queue": "queue",
    "fila": "queue",
    "clear": "clear",
    "limpar": "clear",
    "label": "label",
    "rotulo": "label",
    "rótulo": "label",
    "help": "help",
    "ajuda": "help",
}


@dataclass(frozen=True)
class _Rule:
    name: IntentName
    pattern: Pattern[str]
    # Template over named groups; None means no argument.
    argument: Optional[str] = None


def _exact(*words: str) -> Pattern[str]:
    return re.compile(
        r"^(?:" + "|".join(re.escape(word) for word in words) + r")$", re.IGNORECASE
    )


# Order matters: named commands first, the bare-URL catch-all last.
DIRECT_RULES: tuple[_Rule, ...] = (
    _Rule(
        "volume",
        re.compile(r"^(?:volume|vol)\s+(?P<value>-?\d+)\s*%?$", re.IGNORECASE),
        "{value}",
    ),
    _Rule(
        "play",
        re.compile(r"^(?:play|tocar|soltar)(?:\s+(?P<rest>.+))?$", re.IGNORECASE | re.DOTALL),
        "{rest}",
    ),
    _Rule("pause", _exact("pause", "pausar", "parar")),
    _Rule("next", _exact("next", "pular", "próxima", "proxima")),
    _Rule("queue", _exact("queue", "fila")),
    _Rule("clear", _exact("clear", "limpar")),
    _Rule("help", _exact("help", "ajuda")),
    _Rule(
        "label",
        re.compile(
            r"^(?:label|rotulo|rótulo)\s+(?P<code>\S+)\s+(?P<text>.+)$",
            re.IGNORECASE | re.DOTALL,
        ),
        "{code} {text}",
    ),
    _Rule("play", re.compile(r"^(?P<url>https?://\S+)$", re.IGNORECASE), "{url}"),
)

_MENTION_RUN_RE = re.compile(r"(?:@\S+\s*)+")
_URL_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)
_LOCAL_ID_RE = re.compile(r"^(?:#\d{1,8}|[A-Za-z]\d{3,8})$")


def parse_intent(text: Optional[str], context: AddressingContext) -> Intent:
    """Map raw message text to an Intent under the given addressing context."""

    if context.is_group:
        if not context.bot_mentioned:
            return NO_INTENT
        return _parse_group_command(text or "")
    return _parse_direct_text(text or "")


def _parse_direct_text(text: str) -> Intent:
    stripped = text.strip()
    if not stripped:
        return NO_INTENT
    for rule in DIRECT_RULES:
        match = rule.pattern.match(stripped)
        if match is None:
            continue
        argument = ""
        if rule.argument is not None:
            groups = {key: (value or "") for key, value in match.groupdict().items()}
            argument = rule.argument.format(**groups).strip()
        return Intent(name=rule.name, argument=argument)
    return NO_INTENT


def strip_leading_mentions(text: str) -> str:
    """Drop everything up to and including the first run of @mentions."""

    match = _MENTION_RUN_RE.search(text)
    if match is None:
        return text.strip()
    return text[match.end() :].strip()


def _parse_group_command(text: str) -> Intent:
    remainder = strip_leading_mentions(text)
    if not remainder:
        return NO_INTENT
    parts = remainder.split(None, 1)
    name = COMMAND_ALIASES.get(parts[0].lower())
    if name is None:
        return NO_INTENT
    argument = parts[1].strip() if len(parts) > 1 else ""
    return Intent(name=name, argument=argument)


def classify_play_argument(argument: str) -> PlayTarget:
    """Classify a play argument as URL, local-catalog id, or search query.

    Local ids are checked before free text, so a short query shaped like
    ``A1234`` is always looked up in the local catalog.
    """

    value = argument.strip()
    if _URL_RE.match(value):
        return PlayTarget(kind="url", value=value)
    if _LOCAL_ID_RE.match(value):
        return PlayTarget(kind="local", value=value.lstrip("#"))
    return PlayTarget(kind="search", value=value)
