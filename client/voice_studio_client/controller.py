"""Fallback controller: decides who speaks for each generation request.

Per request the phases are::

    IDLE → SUBMITTING → AWAITING_CONFIG → AWAITING_RESULT → IDLE

``voice_config`` carries the parameters the server resolved; it is recorded
before the terminal ``voice_generated``/``error`` arrives.  When the server
reports that it does not speak (``serverTTSDisabled``), a successful result
makes the client speak that config locally.  Otherwise the server already
produced the audio.

One request is in flight at a time.  Submissions while busy, disconnected or
with empty text are rejected locally and never reach the server.  Nothing is
retried automatically.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from voice_studio_client.local_speech import LocalSpeaker
from voice_studio_client.state import (
    ClientState,
    ConnectionStatus,
    PendingRequest,
    RequestPhase,
    StateChange,
    VoiceConfig,
)

log = logging.getLogger(__name__)

Send = Callable[[dict[str, Any]], Awaitable[None]]
Listener = Callable[[ClientState, StateChange], None]

DEFAULT_INTENSITY_LABELS: dict[int, str] = {
    1: "Subtle",
    2: "Light",
    3: "Moderate",
    4: "Strong",
    5: "Intense",
}


class FallbackController:
    """Owns ``ClientState``; views subscribe to its change notifications."""

    def __init__(
        self,
        send: Send,
        speaker: LocalSpeaker,
        *,
        max_text_chars: int = 500,
    ) -> None:
        self._send = send
        self._speaker = speaker
        self._max_text_chars = max_text_chars
        self._state = ClientState()
        self._listeners: list[Listener] = []
        self._next_request_id = 1
        self._emotions: tuple[str, ...] = ()
        self._intensity_labels = dict(DEFAULT_INTENSITY_LABELS)
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def emotions(self) -> tuple[str, ...]:
        return self._emotions

    # -- observers ----------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, change: StateChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state, change)
            except Exception:
                log.exception("state listener failed on %s", change.kind)

    def _notify(self, message: str, level: str = "info") -> None:
        self._emit(StateChange("notification", message=message, level=level))

    def _set_phase(self, phase: RequestPhase) -> None:
        if phase == self._state.phase:
            return
        self._state.phase = phase
        if phase == RequestPhase.IDLE:
            self._idle.set()
        else:
            self._idle.clear()
        self._emit(StateChange("phase", message=phase.value))

    def _finish_request(self) -> PendingRequest | None:
        req = self._state.current
        self._state.current = None
        self._set_phase(RequestPhase.IDLE)
        return req

    # -- startup inputs -----------------------------------------------------

    def set_server_tts_disabled(self, disabled: bool) -> None:
        self._state.server_tts_disabled = bool(disabled)
        log.info(
            "server speech %s",
            "disabled; speaking locally" if disabled else "enabled",
        )

    def set_catalog(
        self,
        emotions: Iterable[str],
        intensity_labels: dict[int, str] | None = None,
    ) -> None:
        """Use the server's emotion table instead of accepting any name."""
        self._emotions = tuple(emotions)
        if intensity_labels:
            self._intensity_labels = dict(intensity_labels)

    def intensity_label(self, intensity: int) -> str:
        return self._intensity_labels.get(intensity, self._intensity_labels.get(3, "3"))

    # -- transport events ---------------------------------------------------

    def set_connection(self, status: ConnectionStatus) -> None:
        if status == self._state.connection:
            return
        self._state.connection = status
        if status != ConnectionStatus.CONNECTED and self._state.current is not None:
            self._finish_request()
            self._notify("Connection lost. Please resubmit.", "error")
        self._emit(StateChange("connection", message=status.value))

    async def handle_message(self, msg: dict[str, Any]) -> None:
        msg_type = msg.get("type", "")
        if msg_type == "voice_config":
            self._on_voice_config(msg)
        elif msg_type == "voice_generated":
            await self._on_voice_generated(msg)
        elif msg_type == "error":
            self._on_error(msg)
        elif msg_type == "pong":
            pass
        else:
            log.debug("Unknown message type: %s", msg_type)

    # -- user actions -------------------------------------------------------

    async def submit(self, text: str, emotion: str, intensity: int = 3) -> bool:
        """Send one generation request; returns False if rejected locally."""
        text = (text or "").strip()
        if not text:
            self._notify("Please enter some text first!", "error")
            return False
        if len(text) > self._max_text_chars:
            self._notify(
                f"Text is limited to {self._max_text_chars} characters", "error"
            )
            return False
        if self._emotions and emotion not in self._emotions:
            self._notify(f"Unknown emotion: {emotion}", "error")
            return False
        if not self._state.is_connected:
            self._notify("Not connected to server. Please wait...", "error")
            return False
        if self._state.is_processing:
            self._notify("Already processing. Please wait...", "info")
            return False

        req = PendingRequest(
            request_id=self._next_request_id,
            text=text,
            emotion=emotion,
            intensity=intensity,
        )
        self._next_request_id += 1
        self._state.current = req
        self._state.last_request = req
        self._set_phase(RequestPhase.SUBMITTING)

        try:
            await self._send(
                {
                    "type": "generate_voice",
                    "text": text,
                    "emotion": emotion,
                    "intensity": intensity,
                }
            )
        except Exception as exc:
            log.warning("generation request %d not sent: %s", req.request_id, exc)
            if self._state.current is req:
                self._finish_request()
            self._notify("Failed to generate voice. Please try again.", "error")
            return False

        if self._state.current is req and self._state.phase == RequestPhase.SUBMITTING:
            self._set_phase(RequestPhase.AWAITING_CONFIG)
        self._notify("Generating voice...", "info")
        return True

    async def play_again(self) -> bool:
        """Replay the last request: locally if the server does not speak."""
        last = self._state.last_request
        if last is None:
            return False
        if self._state.server_tts_disabled and self._state.last_config is not None:
            await self._speak_locally(self._state.last_config)
            return True
        return await self.submit(last.text, last.emotion, last.intensity)

    async def wait_until_idle(self, timeout: float | None = None) -> bool:
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    # -- server events ------------------------------------------------------

    def _on_voice_config(self, msg: dict[str, Any]) -> None:
        req = self._state.current
        if req is None:
            log.debug("Ignoring voice_config with no request in flight")
            return
        config = VoiceConfig.from_message(msg)
        req.config = config
        self._state.last_config = config
        self._set_phase(RequestPhase.AWAITING_RESULT)
        self._emit(
            StateChange(
                "preview",
                payload={
                    "emotion": req.emotion,
                    "intensity": config.intensity,
                    "intensity_label": self.intensity_label(config.intensity),
                    "original_text": req.text,
                    "modified_text": config.text,
                },
            )
        )

    async def _on_voice_generated(self, msg: dict[str, Any]) -> None:
        req = self._state.current
        if req is None:
            log.debug("Ignoring voice_generated with no request in flight")
            return
        if msg.get("success") is not True:
            self._finish_request()
            self._notify("Failed to generate voice", "error")
            return

        # Local playback starts before the request is marked idle so waiters
        # see the utterance already running.
        if self._state.server_tts_disabled and req.config is not None:
            await self._speak_locally(req.config)
        self._finish_request()

        emotion = str(msg.get("emotion") or req.emotion)
        self._notify(f"Voice generated with {emotion} emotion!", "success")
        self._emit(StateChange("result", payload=dict(msg)))

    def _on_error(self, msg: dict[str, Any]) -> None:
        message = str(msg.get("message") or "Unknown error")
        if self._state.current is not None:
            self._finish_request()
        self._notify(message, "error")

    async def _speak_locally(self, config: VoiceConfig) -> None:
        clamped = config.clamped()
        if not await self._speaker.speak(clamped):
            self._notify("Local speech synthesis not supported", "error")
            return
        self._emit(
            StateChange(
                "speech",
                message=clamped.text,
                payload={
                    "rate": clamped.rate,
                    "pitch": clamped.pitch,
                    "volume": clamped.volume,
                },
            )
        )
