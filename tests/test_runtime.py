from __future__ import annotations

import json
import logging
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from media_router.core.config import RouterConfig
from media_router.integrations.chat.testing import make_event
from media_router.runtime import build_app, build_runtime

BOT_ID = "5511900000000@s.whatsapp.net"
GROUP_CHAT = "120363025555555555@g.us"


class BridgeRecorder:
    def __init__(self) -> None:
        self.texts: list[dict] = []
        self.identity_calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/me":
            self.identity_calls += 1
            return httpx.Response(200, json={"id": BOT_ID})
        if request.url.path == "/messages/text":
            self.texts.append(json.loads(request.content))
            return httpx.Response(200, json={"message_id": "out"})
        return httpx.Response(200, json={})


class BackendRecorder:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))
        return httpx.Response(200, json={"ok": True})


def _config(tmp_path: Path, raw: dict | None = None) -> RouterConfig:
    return RouterConfig.from_raw(raw or {}, root=tmp_path, env={})


@pytest.mark.anyio
async def test_runtime_routes_group_command_end_to_end(tmp_path: Path) -> None:
    bridge = BridgeRecorder()
    backend = BackendRecorder()
    runtime = build_runtime(
        _config(tmp_path),
        logger=logging.getLogger("test.runtime"),
        bridge_transport=httpx.MockTransport(bridge),
        backend_transport=httpx.MockTransport(backend),
    )
    try:
        await runtime.start()
        assert runtime.transport.bot_id == BOT_ID
        assert runtime.config.media_dir.is_dir()
        assert runtime.registry.names == []

        await runtime.dispatcher.dispatch(
            make_event("@bot vol 35", conversation_id=GROUP_CHAT, mentions=(BOT_ID,))
        )
        await runtime.dispatcher.dispatch(
            make_event("vol 90", conversation_id=GROUP_CHAT)
        )
        await runtime.dispatcher.wait_idle()
    finally:
        await runtime.dispatcher.close()
        await runtime.close()

    assert backend.calls == [("POST", "/volume")]
    assert bridge.texts == [{"jid": GROUP_CHAT, "text": "🔊 Volume set to 35%."}]


@pytest.mark.anyio
async def test_runtime_registers_assistant_when_key_configured(tmp_path: Path) -> None:
    config = RouterConfig.from_raw(
        {}, root=tmp_path, env={"OPENROUTER_API_KEY": "sk-or-test"}
    )
    runtime = build_runtime(
        config,
        bridge_transport=httpx.MockTransport(BridgeRecorder()),
        backend_transport=httpx.MockTransport(BackendRecorder()),
        assistant_transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"choices": []})
        ),
    )
    try:
        assert runtime.assistant_client is not None
        assert runtime.registry.names == ["assistant"]
        assert runtime.registry.priority_handler is not None
    finally:
        await runtime.close()


def test_app_lifespan_primes_identity(tmp_path: Path) -> None:
    bridge = BridgeRecorder()
    runtime = build_runtime(
        _config(tmp_path),
        bridge_transport=httpx.MockTransport(bridge),
        backend_transport=httpx.MockTransport(BackendRecorder()),
    )

    with TestClient(build_app(runtime)) as client:
        assert client.get("/health").json() == {"status": "ok"}

    assert bridge.identity_calls == 1


@pytest.mark.anyio
async def test_start_survives_unreachable_bridge(tmp_path: Path, caplog) -> None:
    def bridge(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "not paired"})

    runtime = build_runtime(
        _config(tmp_path),
        logger=logging.getLogger("test.runtime.start"),
        bridge_transport=httpx.MockTransport(bridge),
        backend_transport=httpx.MockTransport(BackendRecorder()),
    )
    try:
        with caplog.at_level(logging.INFO, logger="test.runtime.start"):
            await runtime.start()
    finally:
        await runtime.close()

    assert runtime.transport.bot_id is None
    assert "router.identity.unavailable" in caplog.text
    assert "router.started" in caplog.text


@pytest.mark.anyio
async def test_start_fails_when_media_dir_is_a_file(tmp_path: Path) -> None:
    (tmp_path / "media").write_text("not a directory", encoding="utf-8")
    runtime = build_runtime(
        _config(tmp_path),
        bridge_transport=httpx.MockTransport(BridgeRecorder()),
        backend_transport=httpx.MockTransport(BackendRecorder()),
    )
    try:
        with pytest.raises(FileExistsError):
            await runtime.start()
    finally:
        await runtime.close()
