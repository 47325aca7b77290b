"""Console view: renders controller state changes as terminal output."""

from __future__ import annotations

import sys
from typing import TextIO

from voice_studio_client.state import ClientState, ConnectionStatus, StateChange

_LEVEL_PREFIX = {
    "info": "i",
    "success": "+",
    "error": "!",
}

_CONNECTION_TEXT = {
    ConnectionStatus.CONNECTED: "Connected",
    ConnectionStatus.CONNECTING: "Connecting...",
    ConnectionStatus.DISCONNECTED: "Disconnected",
}


class ConsoleView:
    """Subscriber that prints notifications, connection status and previews."""

    def __init__(
        self,
        stream: TextIO | None = None,
        *,
        show_notifications: bool = True,
        emotion_labels: dict[str, str] | None = None,
    ) -> None:
        self._stream = stream or sys.stdout
        self._show_notifications = show_notifications
        self._emotion_labels = dict(emotion_labels or {})

    def set_emotion_labels(self, labels: dict[str, str]) -> None:
        self._emotion_labels = dict(labels)

    def __call__(self, state: ClientState, change: StateChange) -> None:
        if change.kind == "notification":
            if self._show_notifications:
                prefix = _LEVEL_PREFIX.get(change.level, "i")
                self._write(f"[{prefix}] {change.message}")
        elif change.kind == "connection":
            self._write(f"-- {_CONNECTION_TEXT[state.connection]} --")
        elif change.kind == "preview":
            self._render_preview(change.payload)
        elif change.kind == "speech":
            self._write("(speaking locally)")

    def _render_preview(self, payload: dict) -> None:
        emotion = str(payload.get("emotion", ""))
        label = self._emotion_labels.get(emotion, emotion.capitalize())
        self._write(f"Emotion:   {label}")
        self._write(f"Intensity: {payload.get('intensity_label', '')}")
        self._write(f"Original:  {payload.get('original_text', '')}")
        self._write(f"Modified:  {payload.get('modified_text', '')}")

    def _write(self, line: str) -> None:
        self._stream.write(line + "\n")
        self._stream.flush()
