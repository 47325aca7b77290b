"""Tests for the realtime session connection handling."""

from __future__ import annotations

import asyncio
import json
import sys
import types

import pytest

from voice_studio_client.controller import FallbackController
from voice_studio_client.session import StudioSession
from voice_studio_client.state import ConnectionStatus, RequestPhase, VoiceConfig

_CLOSED = object()


class _FakeConn:
    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.closed = False
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionError("closed")
        self.sent.append(json.loads(message))

    async def close(self) -> None:
        self.closed = True
        self._inbox.put_nowait(_CLOSED)

    def push(self, msg: dict | str) -> None:
        self._inbox.put_nowait(msg if isinstance(msg, str) else json.dumps(msg))

    def drop(self) -> None:
        self._inbox.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        item = await self._inbox.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class _FakeSpeaker:
    async def speak(self, config: VoiceConfig) -> bool:
        return True


@pytest.fixture
def fake_websockets(monkeypatch):
    conns: list[_FakeConn] = []
    urls: list[str] = []

    async def connect(url, **_kwargs):
        urls.append(url)
        conn = _FakeConn()
        conns.append(conn)
        return conn

    module = types.ModuleType("websockets")
    module.connect = connect
    monkeypatch.setitem(sys.modules, "websockets", module)
    return types.SimpleNamespace(conns=conns, urls=urls)


def _wire(server_url: str = "http://studio.local:3000") -> tuple[StudioSession, FallbackController]:
    session = StudioSession(server_url, reconnect_backoff_s=0.01)
    controller = FallbackController(session.send, _FakeSpeaker())
    session.attach(controller)
    return session, controller


def test_ws_url_follows_http_scheme() -> None:
    assert StudioSession("http://studio.local:3000/").ws_url == "ws://studio.local:3000/ws"
    assert StudioSession("https://studio.example").ws_url == "wss://studio.example/ws"


@pytest.mark.asyncio
async def test_send_while_offline_raises() -> None:
    session, _ = _wire()
    with pytest.raises(ConnectionError):
        await session.send({"type": "ping"})


@pytest.mark.asyncio
async def test_connect_and_round_trip(fake_websockets) -> None:
    session, controller = _wire()
    await session.start()
    try:
        assert await session.wait_connected(timeout=1.0) is True
        assert controller.state.connection == ConnectionStatus.CONNECTED
        assert fake_websockets.urls == ["ws://studio.local:3000/ws"]

        conn = fake_websockets.conns[0]
        assert await controller.submit("Hello world", "happy", 3) is True
        assert conn.sent == [
            {"type": "generate_voice", "text": "Hello world", "emotion": "happy", "intensity": 3}
        ]

        conn.push("garbage")
        conn.push({"type": "voice_config", "text": "Hello world!", "rate": 1.2, "pitch": 1.3, "volume": 1.0, "voice": "v", "intensity": 3})
        conn.push({"type": "voice_generated", "success": True, "emotion": "happy", "intensity": 3, "originalText": "Hello world", "modifiedText": "Hello world!"})

        assert await controller.wait_until_idle(timeout=1.0) is True
        assert controller.state.last_config.text == "Hello world!"
    finally:
        await session.stop()

    assert controller.state.connection == ConnectionStatus.DISCONNECTED
    assert fake_websockets.conns[0].closed is True


@pytest.mark.asyncio
async def test_drop_fails_request_and_reconnects(fake_websockets) -> None:
    session, controller = _wire()
    await session.start()
    try:
        assert await session.wait_connected(timeout=1.0) is True
        await controller.submit("Hi", "sad")
        assert controller.state.phase == RequestPhase.AWAITING_CONFIG

        fake_websockets.conns[0].drop()

        assert await controller.wait_until_idle(timeout=1.0) is True
        assert controller.state.current is None

        for _ in range(100):
            if len(fake_websockets.conns) >= 2 and session.connected:
                break
            await asyncio.sleep(0.01)
        assert len(fake_websockets.conns) >= 2
        assert controller.state.connection == ConnectionStatus.CONNECTED
    finally:
        await session.stop()


@pytest.mark.asyncio
async def test_connect_failure_keeps_retrying(monkeypatch) -> None:
    attempts = 0

    async def connect(url, **_kwargs):
        nonlocal attempts
        attempts += 1
        raise OSError("connection refused")

    module = types.ModuleType("websockets")
    module.connect = connect
    monkeypatch.setitem(sys.modules, "websockets", module)

    session, controller = _wire()
    await session.start()
    try:
        assert await session.wait_connected(timeout=0.1) is False
        assert attempts >= 2
        assert controller.state.connection == ConnectionStatus.CONNECTING
    finally:
        await session.stop()
