from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..core.logging_utils import log_event
from ..integrations.chat.media import ALLOWED_AUDIO_EXTENSIONS, audio_extension_for_mime
from ..integrations.chat.models import ChatAttachment
from ..integrations.media_backend import MediaBackendClient, MediaBackendError
from .intents import strip_leading_mentions

UNSUPPORTED_MEDIA_TEXT = "❌ Only audio files are accepted ({}).".format(
    ", ".join(ALLOWED_AUDIO_EXTENSIONS)
)
IMPORT_FAILURE_TEXT = "⚠️ Failed to process the audio."


@dataclass(frozen=True)
class ImportedMedia:
    media_id: str
    path: Path
    extension: str


def generate_media_id(now_ms: int) -> str:
    """Short library id: ``A`` followed by the last six digits of the ms clock."""

    return "A" + str(now_ms)[-6:]


class MediaImportFlow:
    """Stores an uploaded audio attachment and registers it with the backend."""

    def __init__(
        self,
        backend: MediaBackendClient,
        media_dir: Path,
        *,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._backend = backend
        self._media_dir = Path(media_dir)
        self._clock = clock
        self._logger = logger or logging.getLogger(__name__)

    async def handle(
        self, conversation_id: str, attachment: ChatAttachment, caption: str = ""
    ) -> str:
        extension = audio_extension_for_mime(attachment.mime_type)
        if extension is None:
            log_event(
                self._logger,
                logging.INFO,
                "media.import.rejected",
                conversation_id=conversation_id,
                mime_type=attachment.mime_type,
            )
            return UNSUPPORTED_MEDIA_TEXT

        label = strip_leading_mentions(caption) or None
        try:
            imported = await self._store(attachment, extension)
            await self._backend.import_media(
                media_id=imported.media_id,
                file_path=str(imported.path),
                label=label,
            )
        except (MediaBackendError, OSError) as exc:
            log_event(
                self._logger,
                logging.WARNING,
                "media.import.failed",
                conversation_id=conversation_id,
                mime_type=attachment.mime_type,
                exc=exc,
            )
            return IMPORT_FAILURE_TEXT

        log_event(
            self._logger,
            logging.INFO,
            "media.import.completed",
            conversation_id=conversation_id,
            media_id=imported.media_id,
            path=imported.path,
            size_bytes=attachment.size_bytes,
        )
        return (
            f"📥 Audio received ({imported.extension}). ID: {imported.media_id}\n"
            f"Set a label: label {imported.media_id} <text>\n"
            f"Play it: play {imported.media_id}"
        )

    async def _store(self, attachment: ChatAttachment, extension: str) -> ImportedMedia:
        media_id = generate_media_id(int(self._clock() * 1000))
        path = self._media_dir / f"{media_id}.{extension}"
        await asyncio.to_thread(self._write, path, attachment.data)
        return ImportedMedia(media_id=media_id, path=path, extension=extension)

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
