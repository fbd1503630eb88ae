from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

from ..core.logging_utils import log_event
from ..integrations.media_backend import (
    MediaBackendClient,
    MediaBackendError,
    QueueEntry,
)
from .intents import Intent, classify_play_argument
from .selections import (
    MAX_CANDIDATES,
    Candidate,
    PendingSelectionStore,
    SelectionInput,
)

HELP_TEXT = "\n".join(
    [
        "🎵 Commands:",
        "• play <link | id | search> - queue a link, a library id, or search",
        "• pause - pause or resume playback",
        "• next - skip to the next track",
        "• volume <0-100> - set the volume",
        "• queue - show the queue",
        "• clear - clear the queue",
        "• label <id> <text> - label an imported track",
        "• help - show this message",
        "Send an audio file to import it into the library.",
        "In groups, mention me first: @bot play <song>.",
    ]
)
FALLBACK_TEXT = HELP_TEXT
ONBOARDING_TEXT = "👋 Hi! I control the music player.\n" + HELP_TEXT
BACKEND_FAILURE_TEXT = "⚠️ The media server failed to handle that. Try again later."
ROUTER_FAILURE_TEXT = "⚠️ Error processing command."

PLAY_USAGE_TEXT = "Usage: play <link | id | search text>"
VOLUME_USAGE_TEXT = "Usage: volume <0-100>"
LABEL_USAGE_TEXT = "Usage: label <id> <text>"
SELECTION_CANCELLED_TEXT = "❌ Selection cancelled."

QUEUE_RENDER_LIMIT = 10
MIN_VOLUME = 0
MAX_VOLUME = 100

_VOLUME_ARG_RE = re.compile(r"^(-?\d+)\s*%?$")


@dataclass(frozen=True)
class CommandReply:
    command: str
    text: str


class CommandDispatcher:
    """Executes parsed intents against the media backend.

    Every call returns exactly one reply. Argument problems are answered
    before any backend call; backend failures collapse into one generic reply
    per command and are never retried here.
    """

    def __init__(
        self,
        backend: MediaBackendClient,
        selections: PendingSelectionStore,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._backend = backend
        self._selections = selections
        self._logger = logger or logging.getLogger(__name__)
        self._commands: dict[str, Callable[[str, str, str], Awaitable[str]]] = {
            "play": self._play,
            "pause": self._pause,
            "next": self._next,
            "volume": self._volume,
            "queue": self._queue,
            "clear": self._clear,
            "label": self._label,
        }

    @property
    def selections(self) -> PendingSelectionStore:
        return self._selections

    async def dispatch(
        self, intent: Intent, *, conversation_id: str, sender_id: str
    ) -> CommandReply:
        if intent.name == "help":
            return CommandReply(command="help", text=HELP_TEXT)
        command = self._commands.get(intent.name)
        if command is None:
            return CommandReply(command="none", text=FALLBACK_TEXT)
        log_event(
            self._logger,
            logging.INFO,
            "command.dispatched",
            command=intent.name,
            conversation_id=conversation_id,
            sender_id=sender_id,
        )
        try:
            text = await command(intent.argument.strip(), conversation_id, sender_id)
        except MediaBackendError as exc:
            return self._backend_failure(intent.name, conversation_id, exc)
        return CommandReply(command=intent.name, text=text)

    async def resolve_selection(
        self, conversation_id: str, choice: SelectionInput
    ) -> Optional[CommandReply]:
        """Apply a numeric pick or cancel to the conversation's pending selection.

        Returns None when nothing is pending. The entry is consumed before the
        first await so a second event for the same conversation cannot see it.
        """

        pending = self._selections.get(conversation_id)
        if pending is None:
            return None
        if choice.kind == "cancel":
            self._selections.consume(conversation_id)
            log_event(
                self._logger,
                logging.INFO,
                "router.selection.cancelled",
                conversation_id=conversation_id,
            )
            return CommandReply(command="select", text=SELECTION_CANCELLED_TEXT)
        total = len(pending.candidates)
        if choice.number < 1 or choice.number > total:
            return CommandReply(
                command="select",
                text=f"Invalid choice. Reply with a number from 1 to {total}, or 'cancel'.",
            )
        candidate = pending.candidates[choice.number - 1]
        self._selections.consume(conversation_id)
        log_event(
            self._logger,
            logging.INFO,
            "router.selection.resolved",
            conversation_id=conversation_id,
            index=choice.number,
            video_id=candidate.id,
        )
        return await self.play_candidate(conversation_id, candidate)

    async def play_candidate(
        self, conversation_id: str, candidate: Candidate
    ) -> CommandReply:
        try:
            await self._backend.play_video(candidate.id)
        except MediaBackendError as exc:
            return self._backend_failure("select", conversation_id, exc)
        return CommandReply(command="select", text=f"▶️ Now playing: {candidate.title}")

    async def _play(self, argument: str, conversation_id: str, sender_id: str) -> str:
        if not argument:
            return PLAY_USAGE_TEXT
        target = classify_play_argument(argument)
        if target.kind == "url":
            result = await self._backend.enqueue(target.value, requested_by=sender_id)
            if not result.ok:
                reason = result.payload.get("error") or "confirmation required"
                return f"⚠️ Could not queue that link ({reason})."
            return f"🎶 Streaming: {target.value}"
        if target.kind == "local":
            items = await self._backend.search_library(target.value, limit=1)
            if not items:
                return f"Nothing in the library matches {target.value}."
            await self._backend.enqueue_by_id(items[0].db_id)
            return f"🎶 Queued from library: {items[0].title}"

        results = await self._backend.search_videos(target.value, limit=MAX_CANDIDATES)
        if not results:
            return f'Nothing found for "{target.value}".'
        candidates = [
            Candidate(
                id=item.video_id,
                title=item.title,
                subtitle=item.channel,
                duration=item.duration,
            )
            for item in results
        ]
        pending = self._selections.put(conversation_id, candidates)
        return render_candidates(target.value, pending.candidates)

    async def _pause(self, argument: str, conversation_id: str, sender_id: str) -> str:
        await self._backend.toggle_playback()
        return "⏯️ Playback toggled."

    async def _next(self, argument: str, conversation_id: str, sender_id: str) -> str:
        await self._backend.next_track()
        return "⏭️ Skipped to the next track."

    async def _volume(self, argument: str, conversation_id: str, sender_id: str) -> str:
        value = parse_volume(argument)
        if value is None:
            return VOLUME_USAGE_TEXT
        if not MIN_VOLUME <= value <= MAX_VOLUME:
            return f"Volume must be between {MIN_VOLUME} and {MAX_VOLUME}."
        await self._backend.set_volume(value)
        return f"🔊 Volume set to {value}%."

    async def _queue(self, argument: str, conversation_id: str, sender_id: str) -> str:
        entries = await self._backend.get_queue()
        return render_queue(entries)

    async def _clear(self, argument: str, conversation_id: str, sender_id: str) -> str:
        await self._backend.clear_queue()
        return "🧹 Queue cleared."

    async def _label(self, argument: str, conversation_id: str, sender_id: str) -> str:
        parts = argument.split(None, 1)
        if len(parts) < 2 or not parts[1].strip():
            return LABEL_USAGE_TEXT
        code, label = parts[0], parts[1].strip()
        await self._backend.set_label(code=code, label=label)
        return f"🏷️ Label saved for {code}: {label}"

    def _backend_failure(
        self, command: str, conversation_id: str, exc: MediaBackendError
    ) -> CommandReply:
        log_event(
            self._logger,
            logging.WARNING,
            "command.failed",
            command=command,
            conversation_id=conversation_id,
            status_code=exc.status_code,
            exc=exc,
        )
        return CommandReply(command=command, text=BACKEND_FAILURE_TEXT)


def parse_volume(argument: str) -> Optional[int]:
    match = _VOLUME_ARG_RE.match(argument.strip())
    if match is None:
        return None
    return int(match.group(1))


def render_candidates(query: str, candidates: tuple[Candidate, ...]) -> str:
    lines = [f'🔎 Results for "{query}":']
    for position, candidate in enumerate(candidates, start=1):
        details = " · ".join(part for part in (candidate.subtitle, candidate.duration) if part)
        line = f"{position}. {candidate.title}"
        if details:
            line += f" ({details})"
        lines.append(line)
    lines.append("Reply with a number to play it, or 'cancel'.")
    return "\n".join(lines)


def render_queue(entries: Sequence[QueueEntry]) -> str:
    if not entries:
        return "📭 The queue is empty."
    lines = ["📃 Queue:"]
    for entry in entries[:QUEUE_RENDER_LIMIT]:
        marker = "▶️" if entry.current else "•"
        lines.append(f"{marker} {entry.index}. {entry.filename}")
    remaining = len(entries) - QUEUE_RENDER_LIMIT
    if remaining > 0:
        lines.append(f"... and {remaining} more")
    return "\n".join(lines)
