"""Process-wide speech engine: one serialized, time-bounded speaker."""

from __future__ import annotations

import asyncio
import logging
import time

from voice_studio.config import Settings
from voice_studio.tts.speaker import (
    NullSpeaker,
    Speaker,
    SpeechTimeoutError,
    create_speaker,
)
from voice_studio.voices import VoiceParameters, add_speech_pauses

log = logging.getLogger(__name__)


class SpeechEngine:
    """Serializes calls into the external speaker.

    Native speech backends drive a single audio device, so requests arriving
    from different WebSocket sessions wait on one lock.  Each call is bounded
    by ``timeout_s``.  When ``enabled`` is False every call is a no-op.
    """

    def __init__(
        self,
        speaker: Speaker,
        *,
        enabled: bool = True,
        timeout_s: float = 30.0,
    ) -> None:
        self._speaker = speaker
        self._enabled = bool(enabled)
        self._timeout_s = timeout_s
        self._lock = asyncio.Lock()
        self._calls = 0
        self._failures = 0
        self._timeouts = 0
        self._last_duration_ms: int | None = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def backend_name(self) -> str:
        return self._speaker.name

    async def speak(self, params: VoiceParameters, emotion: str) -> None:
        if not self._enabled:
            return

        text = add_speech_pauses(params.text, emotion)
        async with self._lock:
            self._calls += 1
            started = time.monotonic()
            try:
                await asyncio.wait_for(
                    self._speaker.speak(text, params.voice, params.rate),
                    timeout=self._timeout_s,
                )
            except asyncio.TimeoutError:
                self._timeouts += 1
                self._failures += 1
                log.warning("Speech timed out after %.1fs", self._timeout_s)
                raise SpeechTimeoutError(
                    f"speech exceeded timeout ({self._timeout_s}s)"
                ) from None
            except Exception:
                self._failures += 1
                raise
            finally:
                self._last_duration_ms = int((time.monotonic() - started) * 1000)

    def debug_snapshot(self) -> dict:
        return {
            "backend": self._speaker.name,
            "enabled": self._enabled,
            "available": self._speaker.available(),
            "busy": self._lock.locked(),
            "timeout_s": self._timeout_s,
            "calls": self._calls,
            "failures": self._failures,
            "timeouts": self._timeouts,
            "last_duration_ms": self._last_duration_ms,
        }


def create_speech_engine(settings: Settings) -> SpeechEngine:
    if not settings.speech_enabled:
        log.info(
            "Server speech disabled (server_tts_disabled=%s backend=%s); "
            "clients will speak locally",
            settings.server_tts_disabled,
            settings.tts_backend,
        )
        return SpeechEngine(NullSpeaker(), enabled=False, timeout_s=settings.tts_timeout_s)
    speaker = create_speaker(
        settings.tts_backend,
        voice=settings.tts_voice,
        rate_wpm=settings.tts_rate_wpm,
    )
    return SpeechEngine(speaker, enabled=True, timeout_s=settings.tts_timeout_s)
