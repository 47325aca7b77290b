"""Tests for the local espeak fallback speaker."""

from __future__ import annotations

import asyncio

import pytest

from voice_studio_client.local_speech import LocalSpeaker
from voice_studio_client.state import VoiceConfig


def test_command_maps_prosody_to_espeak_flags() -> None:
    speaker = LocalSpeaker(binary="/usr/bin/espeak-ng", voice="en-us", base_wpm=200)

    cmd = speaker.command(VoiceConfig(text="Hello world!", rate=1.2, pitch=1.3, volume=1.0))

    assert cmd == [
        "/usr/bin/espeak-ng",
        "-v",
        "en-us",
        "-s",
        "240",
        "-p",
        "65",
        "-a",
        "100",
        "--",
        "Hello world!",
    ]


def test_command_clamps_out_of_range_values() -> None:
    speaker = LocalSpeaker(binary="espeak", base_wpm=175)

    cmd = speaker.command(VoiceConfig(text="x", rate=50.0, pitch=5.0, volume=1.4))

    assert cmd[cmd.index("-s") + 1] == "450"
    assert cmd[cmd.index("-p") + 1] == "99"
    assert cmd[cmd.index("-a") + 1] == "100"


def test_slow_rates_floor_at_minimum_wpm() -> None:
    speaker = LocalSpeaker(binary="espeak", base_wpm=175)
    cmd = speaker.command(VoiceConfig(text="zzz", rate=0.3, pitch=0.6, volume=0.4))
    assert cmd[cmd.index("-s") + 1] == "80"
    assert cmd[cmd.index("-a") + 1] == "40"


def test_missing_binary(monkeypatch) -> None:
    monkeypatch.setattr("voice_studio_client.local_speech.shutil.which", lambda _name: None)
    speaker = LocalSpeaker()

    assert speaker.available() is False
    with pytest.raises(RuntimeError, match="no local speech synthesizer"):
        speaker.command(VoiceConfig(text="Hi"))
    assert asyncio.run(speaker.speak(VoiceConfig(text="Hi"))) is False


def test_exec_failure_returns_false() -> None:
    speaker = LocalSpeaker(binary="/nonexistent/espeak-ng")

    assert asyncio.run(speaker.speak(VoiceConfig(text="Hi"))) is False
    assert speaker.speaking is False


def test_cancel_and_wait_without_utterance() -> None:
    speaker = LocalSpeaker(binary="espeak")

    async def run() -> None:
        await speaker.cancel()
        await speaker.wait()

    asyncio.run(run())
    assert speaker.speaking is False
