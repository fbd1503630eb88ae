from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import pytest

from media_router.integrations.chat.testing import FakeChatTransport
from media_router.integrations.media_backend import (
    EnqueueResult,
    LibraryItem,
    MediaBackendPermanentError,
    QueueEntry,
    VideoResult,
)
from media_router.router.commands import CommandDispatcher
from media_router.router.cooldown import CooldownStore
from media_router.router.media_import import MediaImportFlow
from media_router.router.registry import HandlerRegistry
from media_router.router.selections import PendingSelectionStore
from media_router.router.service import MessageRouter


class StubBackend:
    """Records backend calls and returns canned payloads."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.videos: list[VideoResult] = []
        self.library: list[LibraryItem] = []
        self.queue: list[QueueEntry] = []
        self.enqueue_ok = True
        self.fail_on: set[str] = set()

    def _record(self, name: str, **kwargs: Any) -> None:
        self.calls.append((name, kwargs))
        if name in self.fail_on:
            raise MediaBackendPermanentError(f"{name} failed", status_code=500)

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def import_media(
        self, *, media_id: str, file_path: str, label: Optional[str] = None
    ) -> dict[str, Any]:
        self._record("import_media", media_id=media_id, file_path=file_path, label=label)
        return {"ok": True}

    async def set_label(self, *, code: str, label: str) -> dict[str, Any]:
        self._record("set_label", code=code, label=label)
        return {"ok": True}

    async def search_library(self, query: str, *, limit: int = 1) -> list[LibraryItem]:
        self._record("search_library", query=query, limit=limit)
        return self.library[:limit]

    async def enqueue(self, query: str, *, requested_by: str) -> EnqueueResult:
        self._record("enqueue", query=query, requested_by=requested_by)
        payload: dict[str, Any] = {"ok": self.enqueue_ok}
        if not self.enqueue_ok:
            payload["error"] = "needs confirmation"
        return EnqueueResult(ok=self.enqueue_ok, payload=payload)

    async def enqueue_by_id(self, db_id: str) -> dict[str, Any]:
        self._record("enqueue_by_id", db_id=db_id)
        return {"ok": True}

    async def search_videos(self, query: str, *, limit: int = 5) -> list[VideoResult]:
        self._record("search_videos", query=query, limit=limit)
        return self.videos[:limit]

    async def play_video(self, video_id: str) -> dict[str, Any]:
        self._record("play_video", video_id=video_id)
        return {"ok": True}

    async def toggle_playback(self) -> dict[str, Any]:
        self._record("toggle_playback")
        return {"ok": True}

    async def next_track(self) -> dict[str, Any]:
        self._record("next_track")
        return {"ok": True}

    async def set_volume(self, value: int) -> dict[str, Any]:
        self._record("set_volume", value=value)
        return {"ok": True}

    async def get_queue(self) -> list[QueueEntry]:
        self._record("get_queue")
        return list(self.queue)

    async def clear_queue(self) -> dict[str, Any]:
        self._record("clear_queue")
        return {"ok": True}


class ManualClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def sample_videos(count: int = 3) -> list[VideoResult]:
    return [
        VideoResult(
            video_id=f"vid{index}",
            title=f"Song {index}",
            channel=f"Channel {index}",
            duration=f"3:0{index}",
        )
        for index in range(1, count + 1)
    ]


@pytest.fixture
def backend() -> StubBackend:
    return StubBackend()


@pytest.fixture
def transport() -> FakeChatTransport:
    return FakeChatTransport()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def selections(clock: ManualClock) -> PendingSelectionStore:
    return PendingSelectionStore(clock=clock)


@pytest.fixture
def commands(backend: StubBackend, selections: PendingSelectionStore) -> CommandDispatcher:
    return CommandDispatcher(backend, selections)  # type: ignore[arg-type]


@pytest.fixture
def registry() -> HandlerRegistry:
    return HandlerRegistry(logger=logging.getLogger("test.registry"))


@pytest.fixture
def media_dir(tmp_path: Path) -> Path:
    return tmp_path / "media"


@pytest.fixture
def router(
    transport: FakeChatTransport,
    backend: StubBackend,
    commands: CommandDispatcher,
    registry: HandlerRegistry,
    media_dir: Path,
    clock: ManualClock,
) -> MessageRouter:
    return MessageRouter(
        transport=transport,
        commands=commands,
        registry=registry,
        media_import=MediaImportFlow(backend, media_dir, clock=clock),  # type: ignore[arg-type]
        cooldowns=CooldownStore(3600, clock=clock),
    )


@pytest.fixture
def make_videos():
    return sample_videos
