"""Client-side state: connection status, request phase, received voice configs."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

# Accepted ranges of the local speech synthesizer.
RATE_RANGE = (0.1, 10.0)
PITCH_RANGE = (0.0, 2.0)
VOLUME_RANGE = (0.0, 1.0)


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class RequestPhase(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_CONFIG = "awaiting_config"
    AWAITING_RESULT = "awaiting_result"


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    lo, hi = bounds
    return max(lo, min(hi, value))


def _number(raw: object, default: float) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return default
    return float(raw)


@dataclass(frozen=True, slots=True)
class VoiceConfig:
    """Voice parameters received in a ``voice_config`` event."""

    text: str
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    voice: str = ""
    intensity: int = 3

    @classmethod
    def from_message(cls, msg: dict[str, Any]) -> VoiceConfig:
        intensity = msg.get("intensity")
        return cls(
            text=str(msg.get("text") or ""),
            rate=_number(msg.get("rate"), 1.0) or 1.0,
            pitch=_number(msg.get("pitch"), 1.0) or 1.0,
            volume=_number(msg.get("volume"), 1.0),
            voice=str(msg.get("voice") or ""),
            intensity=intensity if isinstance(intensity, int) else 3,
        )

    def clamped(self) -> VoiceConfig:
        return replace(
            self,
            rate=_clamp(self.rate, RATE_RANGE),
            pitch=_clamp(self.pitch, PITCH_RANGE),
            volume=_clamp(self.volume, VOLUME_RANGE),
        )


@dataclass(slots=True)
class PendingRequest:
    """The one authoritative record of a submitted request."""

    request_id: int
    text: str
    emotion: str
    intensity: int
    config: VoiceConfig | None = None


@dataclass(slots=True)
class ClientState:
    connection: ConnectionStatus = ConnectionStatus.DISCONNECTED
    phase: RequestPhase = RequestPhase.IDLE
    current: PendingRequest | None = None
    last_request: PendingRequest | None = None
    last_config: VoiceConfig | None = None
    server_tts_disabled: bool = False

    @property
    def is_connected(self) -> bool:
        return self.connection == ConnectionStatus.CONNECTED

    @property
    def is_processing(self) -> bool:
        return self.phase != RequestPhase.IDLE


@dataclass(frozen=True, slots=True)
class StateChange:
    """What changed, delivered to view subscribers alongside the state."""

    kind: str  # connection | phase | preview | result | notification | speech
    message: str = ""
    level: str = "info"
    payload: dict[str, Any] = field(default_factory=dict)
