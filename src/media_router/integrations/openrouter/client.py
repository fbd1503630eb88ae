from __future__ import annotations

import logging
import re
from typing import Any, Optional

import httpx

from .errors import AssistantError, AssistantTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_SYSTEM_PROMPT = (
    'Você é o "RQ Assistente (Público)". Responda com clareza e objetividade. '
    "Seja breve."
)
DEFAULT_MAX_TOKENS = 300
DEFAULT_TEMPERATURE = 0.4

_SENTENCE_TAG_RE = re.compile(r"</?s>", re.IGNORECASE)
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")
_LEADING_STRAY_S_RE = re.compile(r"^[sS]\s*[\r\n]+")


def sanitize_completion(text: Optional[str]) -> str:
    """Strip model artifacts (sentence tags, control characters, stray "S")."""

    cleaned = str(text or "")
    cleaned = _SENTENCE_TAG_RE.sub("", cleaned)
    cleaned = _CONTROL_CHARS_RE.sub("", cleaned)
    cleaned = _EXCESS_NEWLINES_RE.sub("\n\n", cleaned)
    cleaned = _LEADING_STRAY_S_RE.sub("", cleaned)
    return cleaned.strip()


class OpenRouterClient:
    """Chat-completions client for OpenRouter's OpenAI-compatible API."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str = DEFAULT_BASE_URL,
        referrer: str = "http://localhost",
        title: str = "RQ Assistente",
        timeout_seconds: float = 20.0,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._model = model
        self._system_prompt = system_prompt
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "HTTP-Referer": referrer,
                "X-Title": title,
            },
        )

    @property
    def model(self) -> str:
        return self._model

    async def close(self) -> None:
        await self._client.aclose()

    async def complete(self, user_text: str) -> str:
        """Return the raw completion text for a single user message."""

        payload: dict[str, Any] = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": self._system_prompt},
                {"role": "user", "content": user_text},
            ],
            "max_tokens": DEFAULT_MAX_TOKENS,
            "temperature": DEFAULT_TEMPERATURE,
        }
        try:
            response = await self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise AssistantTimeoutError(
                f"OpenRouter request timed out: {type(exc).__name__}"
            ) from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            body_preview = (exc.response.text or "").strip().replace("\n", " ")[:200]
            raise AssistantError(
                f"OpenRouter request failed: status={status_code} body={body_preview!r}",
                status_code=status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise AssistantError(f"OpenRouter network error: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise AssistantError("OpenRouter returned non-JSON response") from exc
        return _extract_content(data)


def _extract_content(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""
