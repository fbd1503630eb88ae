"""Platform-agnostic media helpers."""

from __future__ import annotations

from typing import Optional

AUDIO_CONTENT_TYPES = {
    "audio/aac": "aac",
    "audio/flac": "flac",
    "audio/x-flac": "flac",
    "audio/mp4": "m4a",
    "audio/x-m4a": "m4a",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/ogg": "ogg",
    "audio/oga": "oga",
    "audio/opus": "opus",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
}
ALLOWED_AUDIO_EXTENSIONS = ("mp3", "wav", "flac", "aac", "ogg", "m4a", "oga", "opus")


def normalize_mime_type(mime_type: Optional[str]) -> Optional[str]:
    if not mime_type:
        return None
    base = mime_type.lower().split(";", 1)[0].strip()
    return base or None


def audio_extension_for_mime(mime_type: Optional[str]) -> Optional[str]:
    """Return the storage extension for an accepted audio mime type.

    Codec parameters such as ``audio/ogg; codecs=opus`` are ignored. Returns
    None for anything outside the accepted audio set, including ``video/*``.
    """

    base = normalize_mime_type(mime_type)
    if base is None or not base.startswith("audio/"):
        return None
    extension = AUDIO_CONTENT_TYPES.get(base)
    if extension is None:
        subtype = base.split("/", 1)[1]
        extension = subtype if subtype in ALLOWED_AUDIO_EXTENSIONS else None
    return extension


def is_supported_audio(mime_type: Optional[str]) -> bool:
    return audio_extension_for_mime(mime_type) is not None
