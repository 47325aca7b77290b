"""Client configuration with defaults, loadable from YAML."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

log = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    url: str = "http://localhost:3000"
    http_timeout_s: float = 5.0
    reconnect_backoff_s: float = 1.5
    connect_timeout_s: float = 10.0


@dataclass
class SpeechConfig:
    binary: str = ""  # empty: first of espeak-ng / espeak on PATH
    voice: str = "en"
    base_wpm: int = 175


@dataclass
class UiConfig:
    default_emotion: str = "happy"
    default_intensity: int = 3
    max_text_chars: int = 500
    show_notifications: bool = True


@dataclass
class ClientConfig:
    server: ServerConfig = field(default_factory=ServerConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    ui: UiConfig = field(default_factory=UiConfig)


def load_config(path: str | Path | None = None) -> ClientConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        return ClientConfig()

    path = Path(path)
    if not path.exists():
        log.warning("config file not found: %s, using defaults", path)
        return ClientConfig()

    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}

        cfg = ClientConfig()
        for section in ("server", "speech", "ui"):
            values = raw.get(section) or {}
            target = getattr(cfg, section)
            for k, v in values.items():
                if not hasattr(target, k):
                    log.warning("unknown config key %s.%s ignored", section, k)
                    continue
                setattr(target, k, v)

        log.info("config loaded from %s", path)
        return cfg
    except (OSError, yaml.YAMLError, AttributeError) as e:
        log.warning("config load error: %s, using defaults", e)
        return ClientConfig()
