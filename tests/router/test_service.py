from __future__ import annotations

import re

import pytest

from media_router.integrations.chat.models import ChatAttachment
from media_router.integrations.chat.testing import make_event
from media_router.router.commands import (
    FALLBACK_TEXT,
    ONBOARDING_TEXT,
    ROUTER_FAILURE_TEXT,
)
from media_router.router.media_import import UNSUPPORTED_MEDIA_TEXT
from media_router.router.registry import HandlerDescriptor
from media_router.router.service import MessageRouter

DIRECT_CHAT = "5511988887777@s.whatsapp.net"
GROUP_CHAT = "120363025555555555@g.us"
BOT_ID = "5511900000000@s.whatsapp.net"


def _group_event(text: str, *, mentioned: bool, **kwargs):
    mentions = (BOT_ID,) if mentioned else ()
    return make_event(text, conversation_id=GROUP_CHAT, mentions=mentions, **kwargs)


@pytest.mark.anyio
async def test_direct_volume_command(router, transport, backend) -> None:
    await router.handle_event(make_event("volume 50"))

    assert backend.calls == [("set_volume", {"value": 50})]
    assert len(transport.sent) == 1
    assert "50" in transport.sent[0].text


@pytest.mark.anyio
@pytest.mark.parametrize("text", ["volume -5", "volume 1000", "vol 101%"])
async def test_direct_volume_out_of_range_is_rejected(
    router, transport, backend, text: str
) -> None:
    await router.handle_event(make_event(text))

    assert backend.calls == []
    assert transport.texts() == ["Volume must be between 0 and 100."]


@pytest.mark.anyio
async def test_search_then_select_flow(
    router, transport, backend, selections, make_videos
) -> None:
    backend.videos = make_videos(3)

    await router.handle_event(make_event("tocar some song"))

    assert backend.calls == [("search_videos", {"query": "some song", "limit": 5})]
    assert selections.get(DIRECT_CHAT) is not None
    assert "2. Song 2" in transport.texts()[-1]

    await router.handle_event(make_event("2"))

    assert backend.calls[-1] == ("play_video", {"video_id": "vid2"})
    assert backend.call_names().count("play_video") == 1
    assert selections.get(DIRECT_CHAT) is None
    assert "Song 2" in transport.texts()[-1]


@pytest.mark.anyio
@pytest.mark.parametrize("text", ["0", "-1", "4"])
async def test_invalid_index_keeps_selection(
    router, transport, backend, selections, make_videos, text: str
) -> None:
    backend.videos = make_videos(3)
    await router.handle_event(make_event("play some song"))

    await router.handle_event(make_event(text))

    assert "Invalid choice" in transport.texts()[-1]
    assert "play_video" not in backend.call_names()
    assert selections.get(DIRECT_CHAT) is not None


@pytest.mark.anyio
async def test_cancel_clears_selection(
    router, transport, backend, selections, make_videos
) -> None:
    backend.videos = make_videos(2)
    await router.handle_event(make_event("play some song"))
    calls_before = list(backend.calls)

    await router.handle_event(make_event("Cancel"))

    assert backend.calls == calls_before
    assert selections.get(DIRECT_CHAT) is None
    assert "cancelled" in transport.texts()[-1]


@pytest.mark.anyio
async def test_numeric_text_without_selection_is_not_a_command(
    router, transport, backend
) -> None:
    await router.handle_event(make_event("2"))

    assert backend.calls == []
    assert transport.texts() == [ONBOARDING_TEXT]


@pytest.mark.anyio
@pytest.mark.parametrize("text", ["volume 50", "play some song", "hello", "2", ""])
async def test_group_without_mention_is_silent(
    router, transport, backend, text: str
) -> None:
    await router.handle_event(_group_event(text, mentioned=False))

    assert transport.sent == []
    assert backend.calls == []


@pytest.mark.anyio
async def test_group_textual_at_name_is_not_a_mention(router, transport, backend) -> None:
    await router.handle_event(_group_event("@bot volume 50", mentioned=False))

    assert transport.sent == []
    assert backend.calls == []


@pytest.mark.anyio
async def test_group_mention_dispatches_command(router, transport, backend) -> None:
    await router.handle_event(_group_event("@5511900000000 vol 20", mentioned=True))

    assert backend.calls == [("set_volume", {"value": 20})]
    assert "20" in transport.texts(GROUP_CHAT)[-1]


@pytest.mark.anyio
async def test_group_mention_unrecognized_gets_fallback(router, transport, backend) -> None:
    await router.handle_event(_group_event("@bot dance", mentioned=True))

    assert transport.texts(GROUP_CHAT) == [FALLBACK_TEXT]
    assert backend.calls == []


@pytest.mark.anyio
async def test_group_selection_resolves_with_mention_prefix(
    router, transport, backend, selections, make_videos
) -> None:
    backend.videos = make_videos(3)
    await router.handle_event(_group_event("@bot play some song", mentioned=True))

    await router.handle_event(_group_event("@bot 3", mentioned=True))

    assert backend.calls[-1] == ("play_video", {"video_id": "vid3"})
    assert selections.get(GROUP_CHAT) is None


@pytest.mark.anyio
@pytest.mark.parametrize("text", ["2", "cancel"])
async def test_group_selection_ignores_unmentioned_replies(
    router, transport, backend, selections, make_videos, text: str
) -> None:
    backend.videos = make_videos(3)
    await router.handle_event(_group_event("@bot play some song", mentioned=True))
    sent_before = list(transport.sent)
    calls_before = list(backend.calls)

    await router.handle_event(
        _group_event(text, mentioned=False, sender_id="5511955554444@s.whatsapp.net")
    )

    assert transport.sent == sent_before
    assert backend.calls == calls_before
    assert selections.get(GROUP_CHAT) is not None


@pytest.mark.anyio
async def test_direct_onboarding_is_cooldown_gated(router, transport, clock) -> None:
    for _ in range(3):
        await router.handle_event(make_event("hello there"))

    assert transport.texts() == [ONBOARDING_TEXT]

    clock.advance(3600)
    await router.handle_event(make_event("hello again"))
    await router.handle_event(make_event("and again"))

    assert transport.texts() == [ONBOARDING_TEXT, ONBOARDING_TEXT]


@pytest.mark.anyio
async def test_registry_handler_claims_unmatched_text(
    router, transport, registry
) -> None:
    seen: list[str] = []

    async def on_message(chat_transport, event, is_group) -> bool:
        seen.append(event.text)
        await chat_transport.send_text(event.conversation_id, "handled by plugin")
        return True

    registry.register(HandlerDescriptor(name="plugin", on_message=on_message))

    await router.handle_event(make_event("hello there"))

    assert seen == ["hello there"]
    assert transport.texts() == ["handled by plugin"]


@pytest.mark.anyio
async def test_registry_not_consulted_for_commands(router, registry, backend) -> None:
    seen: list[str] = []

    async def on_message(chat_transport, event, is_group) -> bool:
        seen.append(event.text)
        return True

    registry.register(HandlerDescriptor(name="ai", on_message=on_message, priority=True))

    await router.handle_event(make_event("next"))

    assert seen == []
    assert backend.call_names() == ["next_track"]


@pytest.mark.anyio
async def test_audio_attachment_is_imported(router, transport, backend, media_dir) -> None:
    attachment = ChatAttachment(mime_type="audio/mpeg", data=b"ID3fake", file_name="a.mp3")

    await router.handle_event(make_event("", attachment=attachment))

    assert backend.call_names() == ["import_media"]
    kwargs = backend.calls[0][1]
    assert re.fullmatch(r"A\d{6}", kwargs["media_id"])
    assert kwargs["label"] is None
    stored = media_dir / f"{kwargs['media_id']}.mp3"
    assert kwargs["file_path"] == str(stored)
    assert stored.read_bytes() == b"ID3fake"

    reply = transport.texts()[-1]
    assert kwargs["media_id"] in reply
    assert f"label {kwargs['media_id']} <text>" in reply
    assert f"play {kwargs['media_id']}" in reply


@pytest.mark.anyio
async def test_video_attachment_is_rejected(router, transport, backend, media_dir) -> None:
    attachment = ChatAttachment(mime_type="video/mp4", data=b"\x00\x00", file_name="clip.mp4")

    await router.handle_event(make_event("check this", attachment=attachment))

    assert backend.calls == []
    assert transport.texts() == [UNSUPPORTED_MEDIA_TEXT]
    assert not media_dir.exists()


@pytest.mark.anyio
async def test_group_attachment_requires_mention(router, transport, backend) -> None:
    attachment = ChatAttachment(mime_type="audio/ogg; codecs=opus", data=b"OggS")

    await router.handle_event(_group_event("", mentioned=False, attachment=attachment))
    assert transport.sent == []

    await router.handle_event(_group_event("@bot", mentioned=True, attachment=attachment))
    assert backend.call_names() == ["import_media"]
    assert backend.calls[0][1]["file_path"].endswith(".ogg")


@pytest.mark.anyio
async def test_attachment_precedes_pending_selection(
    router, transport, backend, make_videos
) -> None:
    backend.videos = make_videos(3)
    await router.handle_event(make_event("play some song"))
    attachment = ChatAttachment(mime_type="audio/wav", data=b"RIFF")

    await router.handle_event(make_event("1", attachment=attachment))

    assert "play_video" not in backend.call_names()
    assert backend.call_names()[-1] == "import_media"


@pytest.mark.anyio
async def test_self_originated_events_are_dropped(router, transport, backend) -> None:
    await router.handle_event(make_event("volume 50", from_me=True))

    assert transport.sent == []
    assert backend.calls == []


@pytest.mark.anyio
async def test_self_originated_events_allowed_when_configured(
    transport, backend, commands, registry, media_dir, clock
) -> None:
    from media_router.router.cooldown import CooldownStore
    from media_router.router.media_import import MediaImportFlow

    router = MessageRouter(
        transport=transport,
        commands=commands,
        registry=registry,
        media_import=MediaImportFlow(backend, media_dir, clock=clock),
        cooldowns=CooldownStore(3600, clock=clock),
        allow_from_me=True,
    )

    await router.handle_event(make_event("volume 50", from_me=True))

    assert backend.calls == [("set_volume", {"value": 50})]


@pytest.mark.anyio
async def test_empty_direct_event_gets_no_reply(router, transport, backend) -> None:
    await router.handle_event(make_event("   "))

    assert transport.sent == []
    assert backend.calls == []


@pytest.mark.anyio
async def test_unexpected_error_gets_single_generic_reply(
    router, transport, backend
) -> None:
    async def broken_set_volume(value: int):
        raise RuntimeError("boom")

    backend.set_volume = broken_set_volume

    await router.handle_event(make_event("volume 10"))

    assert transport.texts() == [ROUTER_FAILURE_TEXT]


@pytest.mark.anyio
async def test_selection_state_does_not_cross_conversations(
    router, transport, backend, selections, make_videos
) -> None:
    other_chat = "5511911112222@s.whatsapp.net"
    backend.videos = make_videos(2)
    await router.handle_event(make_event("play some song"))

    await router.handle_event(make_event("1", conversation_id=other_chat))

    assert "play_video" not in backend.call_names()
    assert selections.get(DIRECT_CHAT) is not None
    assert transport.texts(other_chat) == [ONBOARDING_TEXT]
