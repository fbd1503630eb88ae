"""HTTP transport for the WhatsApp bridge sidecar.

The sidecar owns the WhatsApp session (pairing, reconnects, media download);
this module only implements the outbound `ChatTransport` contract on top of
its small REST surface.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ...core.logging_utils import log_event
from ...core.retry import retry_transient
from ..chat.models import ChatMessageRef
from ..chat.transport import PresenceState
from .errors import (
    WhatsAppBridgeError,
    WhatsAppBridgePermanentError,
    WhatsAppBridgeTransientError,
)

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = frozenset({502, 503, 504})


class WhatsAppBridgeTransport:
    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = 10.0,
        bot_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            transport=transport,
        )
        self._bot_id = bot_id

    @property
    def bot_id(self) -> Optional[str]:
        return self._bot_id

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "WhatsAppBridgeTransport":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.close()

    async def refresh_identity(self) -> Optional[str]:
        """Fetch the paired account id from the bridge and cache it."""

        data = await self._request("GET", "/me")
        identity = data.get("id") if isinstance(data, dict) else None
        if isinstance(identity, str) and identity.strip():
            self._bot_id = identity.strip()
            log_event(
                logger, logging.INFO, "whatsapp.bridge.identity", bot_id=self._bot_id
            )
        return self._bot_id

    async def send_text(self, conversation_id: str, text: str) -> Optional[str]:
        data = await self._request(
            "POST",
            "/messages/text",
            payload={"jid": conversation_id, "text": text},
            retry_gateway_errors=False,
        )
        message_id = data.get("message_id") if isinstance(data, dict) else None
        return str(message_id) if message_id else None

    async def send_presence(self, conversation_id: str, state: PresenceState) -> None:
        await self._request(
            "POST", "/presence", payload={"jid": conversation_id, "state": state}
        )

    async def react(self, message: ChatMessageRef, emoji: str) -> None:
        await self._request(
            "POST",
            "/messages/react",
            payload={
                "jid": message.conversation_id,
                "message_id": message.message_id,
                "from_me": message.from_me,
                "emoji": emoji,
            },
        )

    @retry_transient()
    async def _request(
        self,
        method: str,
        path: str,
        *,
        payload: Optional[dict[str, Any]] = None,
        retry_gateway_errors: bool = True,
    ) -> Any:
        try:
            response = await self._client.request(method, path, json=payload)
            response.raise_for_status()
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise WhatsAppBridgeTransientError(
                f"WhatsApp bridge unreachable for {method} {path}: {exc}"
            ) from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            body_preview = (exc.response.text or "").strip().replace("\n", " ")[:200]
            message = (
                f"WhatsApp bridge request failed for {method} {path}: "
                f"status={status_code} body={body_preview!r}"
            )
            # A gateway error after a send may mean the message went out anyway.
            if retry_gateway_errors and status_code in _RETRYABLE_STATUS_CODES:
                raise WhatsAppBridgeTransientError(
                    message, status_code=status_code
                ) from exc
            raise WhatsAppBridgePermanentError(message, status_code=status_code) from exc
        except httpx.HTTPError as exc:
            raise WhatsAppBridgeError(
                f"WhatsApp bridge network error for {method} {path}: "
                f"{type(exc).__name__}: {exc}"
            ) from exc

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise WhatsAppBridgePermanentError(
                f"WhatsApp bridge returned non-JSON response for {method} {path}"
            ) from exc
