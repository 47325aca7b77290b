"""Server configuration with environment variable overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(override=False)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off", ""}


def server_tts_disabled_from_env() -> bool:
    """Server-side speech is off on hosted/production deployments without audio."""
    return (
        _env_bool("DISABLE_SERVER_TTS", False)
        or _env_bool("RENDER", False)
        or os.environ.get("APP_ENV", "").strip().lower() == "production"
    )


_TTS_BACKENDS = {"espeak", "off"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(slots=True)
class Settings:
    """Voice studio server settings. Override any field via environment variable."""

    server_tts_disabled: bool = server_tts_disabled_from_env()
    tts_backend: str = os.environ.get("TTS_BACKEND", "espeak").strip().lower()
    tts_voice: str = os.environ.get("TTS_VOICE", "en-us")
    tts_rate_wpm: int = int(os.environ.get("TTS_RATE_WPM", "175"))
    tts_timeout_s: float = float(os.environ.get("TTS_TIMEOUT_S", "30.0"))
    cors_allow_origins: str = os.environ.get("CORS_ALLOW_ORIGINS", "*")
    log_level: str = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
    host: str = os.environ.get("SERVER_HOST", "0.0.0.0")
    port: int = int(os.environ.get("PORT", "3000"))

    def __post_init__(self) -> None:
        if self.tts_backend not in _TTS_BACKENDS:
            raise ValueError("TTS_BACKEND must be one of: espeak, off")
        if not (80 <= self.tts_rate_wpm <= 450):
            raise ValueError("TTS_RATE_WPM must be in [80, 450]")
        if self.tts_timeout_s <= 0.0:
            raise ValueError("TTS_TIMEOUT_S must be > 0")
        if not (1 <= self.port <= 65535):
            raise ValueError("PORT must be in [1, 65535]")
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of: {', '.join(sorted(_LOG_LEVELS))}")

    @property
    def speech_enabled(self) -> bool:
        return not self.server_tts_disabled and self.tts_backend != "off"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)


settings = Settings()
