"""Local speech fallback: speak a voice config through espeak on this machine.

Used when the server reports that it does not speak.  Playback is
fire-and-forget; starting a new utterance stops the one still playing.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil

from voice_studio_client.state import VoiceConfig

log = logging.getLogger(__name__)

_MIN_WPM = 80
_MAX_WPM = 450
_MAX_PITCH = 99  # espeak -p range is 0..99, 50 is neutral
_NEUTRAL_AMPLITUDE = 100  # espeak -a range is 0..200


class LocalSpeaker:
    """Speaks clamped voice configs with the espeak-ng (or espeak) CLI."""

    def __init__(self, *, binary: str = "", voice: str = "en", base_wpm: int = 175) -> None:
        self._binary = binary or None
        self._voice = voice
        self._base_wpm = base_wpm
        self._proc: asyncio.subprocess.Process | None = None
        self._logged_missing = False

    def _resolve_binary(self) -> str | None:
        if self._binary is None:
            self._binary = shutil.which("espeak-ng") or shutil.which("espeak")
        return self._binary

    def available(self) -> bool:
        return self._resolve_binary() is not None

    @property
    def speaking(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    def command(self, config: VoiceConfig) -> list[str]:
        exe = self._resolve_binary()
        if exe is None:
            raise RuntimeError("no local speech synthesizer installed")
        cfg = config.clamped()
        wpm = max(_MIN_WPM, min(_MAX_WPM, int(round(self._base_wpm * cfg.rate))))
        pitch = max(0, min(_MAX_PITCH, int(round(cfg.pitch * 50))))
        amplitude = int(round(cfg.volume * _NEUTRAL_AMPLITUDE))
        return [
            exe,
            "-v",
            self._voice,
            "-s",
            str(wpm),
            "-p",
            str(pitch),
            "-a",
            str(amplitude),
            "--",
            cfg.text,
        ]

    async def speak(self, config: VoiceConfig) -> bool:
        """Start speaking *config*; returns False if no synthesizer is available."""
        if not self.available():
            if not self._logged_missing:
                self._logged_missing = True
                log.warning("espeak-ng/espeak not found; local speech disabled")
            return False

        await self.cancel()
        cmd = self.command(config)
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            log.warning("failed to start local speech: %s", e)
            self._proc = None
            return False
        log.debug("local speech started (%d chars)", len(config.text))
        return True

    async def cancel(self) -> None:
        """Stop the utterance still playing, if any."""
        proc = self._proc
        self._proc = None
        if proc is None or proc.returncode is not None:
            return
        with contextlib.suppress(ProcessLookupError):
            proc.terminate()
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(proc.wait(), timeout=0.5)
        if proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()

    async def wait(self) -> None:
        """Wait for the current utterance to finish."""
        proc = self._proc
        if proc is not None:
            await proc.wait()
