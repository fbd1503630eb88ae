from __future__ import annotations

import base64
import binascii
from typing import Optional

from pydantic import BaseModel, Field

from ..chat.models import ChatAttachment, ChatEvent
from .errors import InvalidEventPayload

GROUP_SUFFIX = "@g.us"


class AttachmentPayload(BaseModel):
    mime_type: Optional[str] = None
    file_name: Optional[str] = None
    data_base64: str


class InboundEventPayload(BaseModel):
    """Message event as posted by the bridge sidecar."""

    conversation_id: str
    sender_id: Optional[str] = None
    message_id: str
    text: Optional[str] = None
    from_me: bool = False
    is_group: Optional[bool] = None
    mentions: list[str] = Field(default_factory=list)
    attachment: Optional[AttachmentPayload] = None


def is_group_conversation(conversation_id: str) -> bool:
    return conversation_id.endswith(GROUP_SUFFIX)


def decode_attachment(payload: AttachmentPayload) -> ChatAttachment:
    try:
        data = base64.b64decode(payload.data_base64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidEventPayload("attachment.data_base64 is not valid base64") from exc
    return ChatAttachment(
        mime_type=payload.mime_type,
        data=data,
        file_name=payload.file_name,
    )


def event_from_payload(payload: InboundEventPayload) -> ChatEvent:
    """Normalize a bridge payload into a `ChatEvent`.

    Group membership falls back to the ``@g.us`` conversation suffix when the
    bridge leaves ``is_group`` unset; in direct chats the sender defaults to
    the conversation id.
    """

    conversation_id = payload.conversation_id.strip()
    if not conversation_id:
        raise InvalidEventPayload("conversation_id must not be empty")
    message_id = payload.message_id.strip()
    if not message_id:
        raise InvalidEventPayload("message_id must not be empty")
    is_group = (
        payload.is_group
        if payload.is_group is not None
        else is_group_conversation(conversation_id)
    )
    sender_id = (payload.sender_id or "").strip() or conversation_id
    attachment = (
        decode_attachment(payload.attachment) if payload.attachment is not None else None
    )
    return ChatEvent(
        conversation_id=conversation_id,
        sender_id=sender_id,
        message_id=message_id,
        text=payload.text or "",
        is_group=is_group,
        mentions=frozenset(item for item in payload.mentions if item),
        attachment=attachment,
        from_me=payload.from_me,
    )
