"""Per-conversation search-then-select state.

A conversation holds at most one pending selection. A new search replaces it;
a valid pick or a cancel consumes it; an invalid index leaves it in place.
All operations are synchronous so the router can check and consume an entry
without yielding to the event loop in between.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Callable, Literal, Optional, Sequence

CANCEL_TOKENS = frozenset({"cancel", "cancelar"})
MAX_CANDIDATES = 5

_SELECTION_NUMBER_RE = re.compile(r"^-?\d+$")

Clock = Callable[[], float]


@dataclass(frozen=True)
class Candidate:
    id: str
    title: str
    subtitle: str = ""
    duration: str = ""


@dataclass(frozen=True)
class PendingSelection:
    conversation_id: str
    candidates: tuple[Candidate, ...]
    created_at: float


@dataclass(frozen=True)
class SelectionInput:
    kind: Literal["index", "cancel"]
    number: int = 0


def resolve_selection_input(text: Optional[str]) -> Optional[SelectionInput]:
    """Return the parsed reply if it is a selection number or a cancel token.

    Signed integers are accepted so that ``-1`` reaches index validation
    instead of falling through to intent parsing.
    """

    value = (text or "").strip()
    if not value:
        return None
    if value.lower() in CANCEL_TOKENS:
        return SelectionInput(kind="cancel")
    if _SELECTION_NUMBER_RE.match(value):
        return SelectionInput(kind="index", number=int(value))
    return None


class PendingSelectionStore:
    """In-memory pending selections keyed by conversation id."""

    def __init__(self, *, clock: Clock = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, PendingSelection] = {}

    def put(
        self, conversation_id: str, candidates: Sequence[Candidate]
    ) -> PendingSelection:
        items = tuple(candidates)[:MAX_CANDIDATES]
        if not items:
            raise ValueError("a pending selection needs at least one candidate")
        entry = PendingSelection(
            conversation_id=conversation_id,
            candidates=items,
            created_at=self._clock(),
        )
        self._entries[conversation_id] = entry
        return entry

    def get(self, conversation_id: str) -> Optional[PendingSelection]:
        return self._entries.get(conversation_id)

    def consume(self, conversation_id: str) -> Optional[PendingSelection]:
        return self._entries.pop(conversation_id, None)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._entries
