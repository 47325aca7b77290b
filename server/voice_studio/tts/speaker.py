"""External speech backends driven by (text, voice, rate).

The speaker interface is intentionally small: text + voice name + rate
multiplier in, audio out of the host's sound device.  ``EspeakSpeaker``
shells out to ``espeak-ng``/``espeak``; ``NullSpeaker`` is used when
server-side speech is switched off.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import re
import shutil
from abc import ABC, abstractmethod

log = logging.getLogger(__name__)

_ESPEAK_MIN_WPM = 80
_ESPEAK_MAX_WPM = 450
_ESPEAK_VOICE_ID = re.compile(r"[A-Za-z0-9_+\-]+")


class SpeechError(RuntimeError):
    """Raised when the speech backend fails to speak."""


class SpeechUnavailableError(SpeechError):
    """Raised when the speech backend is not installed."""


class SpeechTimeoutError(SpeechError):
    """Raised when the speech backend exceeds its time budget."""


class Speaker(ABC):
    """Base class for speech backends."""

    name: str = "abstract"

    @abstractmethod
    async def speak(self, text: str, voice: str, rate: float) -> None:
        """Speak *text*; return once playback has finished."""

    def available(self) -> bool:
        return True


class NullSpeaker(Speaker):
    """Accepts every request without producing audio."""

    name = "off"

    async def speak(self, text: str, voice: str, rate: float) -> None:
        log.debug("Server speech off; skipping %d chars", len(text))


class EspeakSpeaker(Speaker):
    """Speaks through the espeak-ng (or espeak) command line synthesizer."""

    name = "espeak"

    def __init__(
        self,
        *,
        default_voice: str = "en-us",
        rate_wpm: int = 175,
        binary: str | None = None,
    ) -> None:
        self._default_voice = default_voice
        self._rate_wpm = rate_wpm
        self._binary = binary

    def _resolve_binary(self) -> str | None:
        if self._binary is None:
            self._binary = shutil.which("espeak-ng") or shutil.which("espeak")
        return self._binary

    def available(self) -> bool:
        return self._resolve_binary() is not None

    def voice_id(self, voice: str) -> str:
        """Profile voices like "Microsoft David Desktop" are not espeak ids."""
        if voice and _ESPEAK_VOICE_ID.fullmatch(voice):
            return voice
        return self._default_voice

    def words_per_minute(self, rate: float) -> int:
        wpm = int(round(self._rate_wpm * rate))
        return max(_ESPEAK_MIN_WPM, min(_ESPEAK_MAX_WPM, wpm))

    def command(self, text: str, voice: str, rate: float) -> list[str]:
        exe = self._resolve_binary()
        if exe is None:
            raise SpeechUnavailableError("espeak_not_available")
        return [
            exe,
            "-v",
            self.voice_id(voice),
            "-s",
            str(self.words_per_minute(rate)),
            "--",
            text,
        ]

    async def speak(self, text: str, voice: str, rate: float) -> None:
        cmd = self.command(text, voice, rate)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise SpeechError(f"espeak_exec_failed: {exc}") from exc

        try:
            _, stderr = await proc.communicate()
        except asyncio.CancelledError:
            # Cancelled by the caller's timeout: do not leave audio playing.
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            with contextlib.suppress(Exception):
                await proc.wait()
            raise

        if proc.returncode != 0:
            err = (stderr or b"").decode("utf-8", "replace").strip()
            log.warning("espeak exited with code %s: %s", proc.returncode, err[:200])
            raise SpeechError(f"espeak_nonzero_exit: {proc.returncode}")


def create_speaker(backend: str, *, voice: str, rate_wpm: int) -> Speaker:
    """Factory: pick backend based on config."""
    backend = backend.lower()
    if backend == "off":
        log.info("Using null speaker (server speech off)")
        return NullSpeaker()
    if backend == "espeak":
        speaker = EspeakSpeaker(default_voice=voice, rate_wpm=rate_wpm)
        if not speaker.available():
            log.warning(
                "TTS_BACKEND=espeak but espeak-ng/espeak is not installed; "
                "speech requests will fail"
            )
        return speaker
    raise ValueError(f"Unknown TTS backend: {backend!r}")
