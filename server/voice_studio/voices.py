"""Emotion voice profiles: per-intensity prosody table and text transforms.

This module is the single authoritative emotion table. ``resolve`` turns
(text, emotion, intensity) into the parameters handed to a speech engine,
either the server's own or the client's local fallback.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Any, Callable

DEFAULT_INTENSITY = 3
MIN_INTENSITY = 1
MAX_INTENSITY = 5
DEFAULT_VOICE = "Microsoft David Desktop"

INTENSITY_LABELS: dict[int, str] = {
    1: "Subtle",
    2: "Light",
    3: "Moderate",
    4: "Strong",
    5: "Intense",
}


@dataclasses.dataclass(frozen=True, slots=True)
class Prosody:
    rate: float
    pitch: float
    volume: float


@dataclasses.dataclass(frozen=True, slots=True)
class EmotionProfile:
    """Base prosody plus per-intensity overrides for one emotion."""

    label: str
    emoji: str
    base: Prosody
    levels: dict[int, Prosody]
    voice: str = DEFAULT_VOICE

    def level(self, intensity: int) -> Prosody:
        return self.levels.get(intensity, self.levels[DEFAULT_INTENSITY])


@dataclasses.dataclass(frozen=True, slots=True)
class VoiceParameters:
    """Resolved synthesis instructions for one request."""

    text: str
    rate: float
    pitch: float
    volume: float
    voice: str
    intensity: int

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def _levels(*rows: tuple[float, float, float]) -> dict[int, Prosody]:
    return {i: Prosody(*row) for i, row in enumerate(rows, start=MIN_INTENSITY)}


# Ordered: the order is what /api/emotions reports.
_PROFILES: dict[str, EmotionProfile] = {
    "happy": EmotionProfile(
        label="Happy",
        emoji="\U0001F60A",
        base=Prosody(1.2, 1.3, 1.0),
        levels=_levels(
            (1.0, 1.1, 0.8),
            (1.1, 1.2, 0.9),
            (1.2, 1.3, 1.0),
            (1.3, 1.4, 1.1),
            (1.4, 1.5, 1.2),
        ),
    ),
    "sad": EmotionProfile(
        label="Sad",
        emoji="\U0001F622",
        base=Prosody(0.7, 0.6, 0.8),
        levels=_levels(
            (0.8, 0.7, 0.9),
            (0.75, 0.65, 0.85),
            (0.7, 0.6, 0.8),
            (0.65, 0.55, 0.75),
            (0.6, 0.5, 0.7),
        ),
    ),
    "shock": EmotionProfile(
        label="Shock",
        emoji="\U0001F631",
        base=Prosody(1.8, 1.6, 1.2),
        levels=_levels(
            (1.4, 1.3, 1.0),
            (1.6, 1.4, 1.1),
            (1.8, 1.6, 1.2),
            (2.0, 1.8, 1.3),
            (2.2, 2.0, 1.4),
        ),
    ),
    "angry": EmotionProfile(
        label="Angry",
        emoji="\U0001F620",
        base=Prosody(1.4, 1.5, 1.1),
        levels=_levels(
            (1.2, 1.3, 1.0),
            (1.3, 1.4, 1.05),
            (1.4, 1.5, 1.1),
            (1.5, 1.6, 1.15),
            (1.6, 1.7, 1.2),
        ),
    ),
    "sleepy": EmotionProfile(
        label="Sleepy",
        emoji="\U0001F634",
        base=Prosody(0.5, 0.7, 0.6),
        levels=_levels(
            (0.7, 0.8, 0.8),
            (0.6, 0.75, 0.7),
            (0.5, 0.7, 0.6),
            (0.4, 0.65, 0.5),
            (0.3, 0.6, 0.4),
        ),
    ),
    "thoughtful": EmotionProfile(
        label="Thoughtful",
        emoji="\U0001F914",
        base=Prosody(0.9, 0.9, 0.9),
        levels=_levels(
            (1.0, 1.0, 1.0),
            (0.95, 0.95, 0.95),
            (0.9, 0.9, 0.9),
            (0.85, 0.85, 0.85),
            (0.8, 0.8, 0.8),
        ),
    ),
}

EMOTIONS: tuple[str, ...] = tuple(_PROFILES)

_ELLIPSIS = "..."
_SAD_STOPS = re.compile(r"\.{3}|[.!]")


def _happy(text: str) -> str:
    # The closing "!" is decided on the raw text, so "Hello." ends in "!!".
    if not text.endswith("!"):
        text += "!"
    return text.replace(".", "!").replace(",", "!")


def _sad(text: str) -> str:
    # Existing ellipses are matched whole so they are not expanded again.
    text = _SAD_STOPS.sub(_ELLIPSIS, text)
    if not text.endswith(_ELLIPSIS):
        text += _ELLIPSIS
    return text


_TRANSFORMS: dict[str, Callable[[str], str]] = {
    "happy": _happy,
    "sad": _sad,
    "shock": lambda text: f"Oh my! {text}! Wow!",
    "angry": lambda text: f"Listen! {text}! Now!",
    "sleepy": lambda text: f"Yawn... {text}... zzz...",
    "thoughtful": lambda text: f"Hmm... {text}... I think...",
}

# (pattern, replacement) applied right before the server speech engine.
_SPEECH_PAUSES: dict[str, tuple[str, str]] = {
    "happy": ("!", " ! "),
    "sad": (_ELLIPSIS, " ... "),
    "shock": ("!", " !!! "),
    "angry": ("!", " ! "),
    "sleepy": (_ELLIPSIS, " ... "),
    "thoughtful": (_ELLIPSIS, " ... "),
}


def is_known_emotion(emotion: object) -> bool:
    return isinstance(emotion, str) and emotion in _PROFILES


def normalize_intensity(raw: object) -> int:
    """Return the effective intensity level; anything unusable maps to 3."""
    if isinstance(raw, bool):
        return DEFAULT_INTENSITY
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float) and raw.is_integer():
        value = int(raw)
    elif isinstance(raw, str):
        try:
            value = int(raw.strip())
        except ValueError:
            return DEFAULT_INTENSITY
    else:
        return DEFAULT_INTENSITY
    if MIN_INTENSITY <= value <= MAX_INTENSITY:
        return value
    return DEFAULT_INTENSITY


def intensity_label(intensity: object) -> str:
    return INTENSITY_LABELS[normalize_intensity(intensity)]


def transform_text(text: str, emotion: str) -> str:
    """Apply the emotion's text transformation (independent of intensity)."""
    return _TRANSFORMS[emotion](text)


def add_speech_pauses(text: str, emotion: str) -> str:
    """Space out emphasis marks so the speech engine pauses on them."""
    rule = _SPEECH_PAUSES.get(emotion)
    if rule is None:
        return text
    pattern, replacement = rule
    return text.replace(pattern, replacement)


def resolve(text: str, emotion: str, intensity: object = None) -> VoiceParameters:
    """Resolve voice parameters for *text* spoken with *emotion*.

    Pure and deterministic. *emotion* must be one of ``EMOTIONS``; callers
    check with ``is_known_emotion`` first. Intensity outside [1, 5], or
    missing, resolves to the level-3 entry.
    """
    profile = _PROFILES[emotion]
    level = normalize_intensity(intensity)
    prosody = profile.level(level)
    return VoiceParameters(
        text=transform_text(text, emotion),
        rate=prosody.rate,
        pitch=prosody.pitch,
        volume=prosody.volume,
        voice=profile.voice,
        intensity=level,
    )


def emotion_profiles() -> list[dict[str, Any]]:
    """Full per-emotion metadata, in catalog order, for clients to render."""
    out: list[dict[str, Any]] = []
    for key, profile in _PROFILES.items():
        out.append(
            {
                "emotion": key,
                "label": profile.label,
                "emoji": profile.emoji,
                "voice": profile.voice,
                "base": dataclasses.asdict(profile.base),
                "intensity": {
                    str(level): dataclasses.asdict(prosody)
                    for level, prosody in profile.levels.items()
                },
                "example": transform_text("Hello world", key),
            }
        )
    return out


def intensity_levels() -> list[dict[str, Any]]:
    return [
        {"level": level, "label": label} for level, label in INTENSITY_LABELS.items()
    ]
