"""Tests for the /ws realtime generation protocol."""

from __future__ import annotations

import asyncio

from fastapi import FastAPI
from fastapi.testclient import TestClient

from voice_studio.routers.realtime import router as realtime_router
from voice_studio.sessions import SessionRegistry
from voice_studio.tts.engine import SpeechEngine
from voice_studio.tts.speaker import Speaker, SpeechError


class _FakeSpeaker(Speaker):
    name = "fake"

    def __init__(self) -> None:
        self.spoken: list[str] = []

    async def speak(self, text: str, voice: str, rate: float) -> None:
        self.spoken.append(text)


class _BrokenSpeaker(Speaker):
    name = "broken"

    async def speak(self, text: str, voice: str, rate: float) -> None:
        raise SpeechError("espeak_nonzero_exit: 1")


class _SlowSpeaker(Speaker):
    name = "slow"

    async def speak(self, text: str, voice: str, rate: float) -> None:
        await asyncio.sleep(1.0)


def _make_app(speaker: Speaker | None = None, *, enabled: bool = True) -> FastAPI:
    app = FastAPI()
    app.include_router(realtime_router)
    app.state.speech_engine = SpeechEngine(
        speaker or _FakeSpeaker(), enabled=enabled, timeout_s=0.2
    )
    app.state.session_registry = SessionRegistry()
    app.state.server_tts_disabled = not enabled
    return app


def test_generate_sends_config_then_result():
    speaker = _FakeSpeaker()
    app = _make_app(speaker)
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json(
                {"type": "generate_voice", "text": "Hello world", "emotion": "happy", "intensity": 3}
            )
            config = ws.receive_json()
            result = ws.receive_json()

    assert config == {
        "type": "voice_config",
        "text": "Hello world!",
        "rate": 1.2,
        "pitch": 1.3,
        "volume": 1.0,
        "voice": "Microsoft David Desktop",
        "intensity": 3,
    }
    assert result == {
        "type": "voice_generated",
        "success": True,
        "emotion": "happy",
        "intensity": 3,
        "originalText": "Hello world",
        "modifiedText": "Hello world!",
    }
    assert speaker.spoken == ["Hello world ! "]


def test_out_of_range_intensity_echoes_effective_level():
    app = _make_app()
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "generate_voice", "text": "I am sad", "emotion": "sad", "intensity": 9})
            config = ws.receive_json()
            result = ws.receive_json()

    assert config["intensity"] == 3
    assert (config["rate"], config["pitch"], config["volume"]) == (0.7, 0.6, 0.8)
    assert result["intensity"] == 3


def test_disabled_server_speech_still_sends_config_and_result():
    speaker = _FakeSpeaker()
    app = _make_app(speaker, enabled=False)
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "generate_voice", "text": "I am sad", "emotion": "sad", "intensity": 5})
            config = ws.receive_json()
            result = ws.receive_json()

    assert config["text"] == "I am sad..."
    assert (config["rate"], config["pitch"], config["volume"]) == (0.6, 0.5, 0.7)
    assert result["type"] == "voice_generated"
    assert speaker.spoken == []


def test_validation_failure_sends_only_error():
    app = _make_app()
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "generate_voice", "text": "Hello"})
            first = ws.receive_json()
            ws.send_json({"type": "ping"})
            second = ws.receive_json()

    assert first == {"type": "error", "message": "Text and emotion are required"}
    assert second == {"type": "pong"}
    assert app.state.session_registry.snapshot()["rejected"] == 1


def test_unknown_emotion_is_rejected():
    app = _make_app()
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "generate_voice", "text": "Beep", "emotion": "robotic"})
            msg = ws.receive_json()

    assert msg == {"type": "error", "message": "Text and emotion are required"}


def test_speech_failure_sends_config_then_error():
    app = _make_app(_BrokenSpeaker())
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "generate_voice", "text": "Hi", "emotion": "angry"})
            config = ws.receive_json()
            error = ws.receive_json()

    assert config["type"] == "voice_config"
    assert error == {"type": "error", "message": "Failed to generate voice"}
    assert app.state.session_registry.snapshot()["failed"] == 1


def test_speech_timeout_sends_error():
    app = _make_app(_SlowSpeaker())
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "generate_voice", "text": "Hi", "emotion": "sleepy"})
            assert ws.receive_json()["type"] == "voice_config"
            assert ws.receive_json() == {"type": "error", "message": "Failed to generate voice"}


def test_garbage_and_unknown_messages_are_ignored():
    app = _make_app()
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            ws.send_json(["a", "list"])
            ws.send_json({"type": "dance"})
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}


def test_sessions_get_independent_replies():
    app = _make_app()
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws1, client.websocket_connect("/ws") as ws2:
            ws1.send_json({"type": "generate_voice", "text": "One", "emotion": "happy"})
            ws2.send_json({"type": "generate_voice", "text": "Two", "emotion": "shock", "intensity": 5})

            c1, r1 = ws1.receive_json(), ws1.receive_json()
            c2, r2 = ws2.receive_json(), ws2.receive_json()
            assert app.state.session_registry.active_sessions == 2

    assert c1["text"] == "One!"
    assert r1["originalText"] == "One"
    assert c2["text"] == "Oh my! Two! Wow!"
    assert c2["rate"] == 2.2
    assert r2["emotion"] == "shock"


def test_session_is_unregistered_on_disconnect():
    app = _make_app()
    with TestClient(app) as client:
        for _ in range(2):
            with client.websocket_connect("/ws") as ws:
                ws.send_json({"type": "ping"})
                ws.receive_json()

    snap = app.state.session_registry.snapshot()
    assert snap["registered"] == 2
    assert snap["unregistered"] == 2
    assert snap["active_sessions"] == 0
