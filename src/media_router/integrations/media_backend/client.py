from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ...core.retry import retry_transient
from .errors import (
    MediaBackendError,
    MediaBackendPermanentError,
    MediaBackendTransientError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class LibraryItem:
    db_id: str
    title: str


@dataclass(frozen=True)
class VideoResult:
    video_id: str
    title: str
    channel: str
    duration: str


@dataclass(frozen=True)
class QueueEntry:
    index: int
    filename: str
    current: bool


@dataclass(frozen=True)
class EnqueueResult:
    ok: bool
    payload: dict[str, Any]


class MediaBackendClient:
    """Thin async client for the media-control backend HTTP API."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "MediaBackendClient":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    @retry_transient()
    async def _request(
        self,
        method: str,
        path: str,
        *,
        payload: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        try:
            response = await self._client.request(
                method, path, json=payload, params=params
            )
            response.raise_for_status()
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise MediaBackendTransientError(
                f"Media backend unreachable for {method} {path}: {exc}"
            ) from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            body_preview = (exc.response.text or "").strip().replace("\n", " ")[:200]
            raise MediaBackendPermanentError(
                f"Media backend request failed for {method} {path}: "
                f"status={status_code} body={body_preview!r}",
                status_code=status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise MediaBackendPermanentError(
                f"Media backend network error for {method} {path}: "
                f"{type(exc).__name__}: {exc}"
            ) from exc

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise MediaBackendPermanentError(
                f"Media backend returned non-JSON response for {method} {path}"
            ) from exc

    async def _request_dict(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        data = await self._request(method, path, **kwargs)
        if not isinstance(data, dict):
            raise MediaBackendPermanentError(
                f"Media backend returned unexpected payload for {method} {path}"
            )
        return data

    async def import_media(
        self, *, media_id: str, file_path: str, label: Optional[str] = None
    ) -> dict[str, Any]:
        return await self._request_dict(
            "POST",
            "/library/import",
            payload={"id": media_id, "file": file_path, "label": label},
        )

    async def set_label(self, *, code: str, label: str) -> dict[str, Any]:
        return await self._request_dict(
            "POST", "/library/label", params={"code": code, "label": label}
        )

    async def search_library(self, query: str, *, limit: int = 1) -> list[LibraryItem]:
        data = await self._request_dict(
            "POST", "/library/search", payload={"query": query, "limit": limit}
        )
        items: list[LibraryItem] = []
        for row in _coerce_rows(data.get("results")):
            db_id = row.get("db_id")
            if db_id is None:
                continue
            items.append(
                LibraryItem(db_id=str(db_id), title=str(row.get("title") or db_id))
            )
        return items

    async def enqueue(self, query: str, *, requested_by: str) -> EnqueueResult:
        data = await self._request_dict(
            "POST", "/queue", payload={"query": query, "requested_by": requested_by}
        )
        return EnqueueResult(ok=bool(data.get("ok", False)), payload=data)

    async def enqueue_by_id(self, db_id: str) -> dict[str, Any]:
        return await self._request_dict(
            "POST", "/queue/by-id", payload={"db_id": db_id}
        )

    async def search_videos(self, query: str, *, limit: int = 5) -> list[VideoResult]:
        data = await self._request_dict(
            "POST", "/yt/search", payload={"query": query, "limit": limit}
        )
        if data.get("ok") is False:
            raise MediaBackendPermanentError(
                f"Media backend rejected video search: {data.get('error')!r}"
            )
        results: list[VideoResult] = []
        for row in _coerce_rows(data.get("results")):
            video_id = row.get("video_id")
            if not video_id:
                continue
            results.append(
                VideoResult(
                    video_id=str(video_id),
                    title=str(row.get("title") or video_id),
                    channel=str(row.get("channel") or ""),
                    duration=str(row.get("duration") or ""),
                )
            )
        return results[:limit]

    async def play_video(self, video_id: str) -> dict[str, Any]:
        return await self._request_dict(
            "POST", "/yt/play", payload={"video_id": video_id}
        )

    async def toggle_playback(self) -> dict[str, Any]:
        return await self._request_dict("POST", "/play")

    async def next_track(self) -> dict[str, Any]:
        return await self._request_dict("POST", "/next")

    async def set_volume(self, value: int) -> dict[str, Any]:
        return await self._request_dict("POST", "/volume", params={"value": value})

    async def get_queue(self) -> list[QueueEntry]:
        data = await self._request_dict("GET", "/queue")
        entries: list[QueueEntry] = []
        for position, row in enumerate(_coerce_rows(data.get("playlist"))):
            try:
                index = int(row.get("index", position))
            except (TypeError, ValueError):
                index = position
            entries.append(
                QueueEntry(
                    index=index,
                    filename=str(row.get("filename") or "?"),
                    current=bool(row.get("current", False)),
                )
            )
        return entries

    async def clear_queue(self) -> dict[str, Any]:
        return await self._request_dict("POST", "/queue/clear")


def _coerce_rows(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [row for row in value if isinstance(row, dict)]


__all__ = [
    "EnqueueResult",
    "LibraryItem",
    "MediaBackendClient",
    "MediaBackendError",
    "QueueEntry",
    "VideoResult",
]
