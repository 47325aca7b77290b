"""Tests for client YAML config loading."""

from __future__ import annotations

from voice_studio_client.config import ClientConfig, load_config


def test_defaults_without_path() -> None:
    cfg = load_config(None)
    assert cfg == ClientConfig()
    assert cfg.server.url == "http://localhost:3000"
    assert cfg.ui.default_intensity == 3


def test_missing_file_uses_defaults(tmp_path) -> None:
    assert load_config(tmp_path / "nope.yaml") == ClientConfig()


def test_loads_sections_and_skips_unknown_keys(tmp_path) -> None:
    path = tmp_path / "client.yaml"
    path.write_text(
        "server:\n"
        "  url: http://10.0.0.20:3000\n"
        "  reconnect_backoff_s: 3\n"
        "speech:\n"
        "  voice: en-gb\n"
        "ui:\n"
        "  default_emotion: sleepy\n"
        "  colour: blue\n"
    )

    cfg = load_config(path)

    assert cfg.server.url == "http://10.0.0.20:3000"
    assert cfg.server.reconnect_backoff_s == 3
    assert cfg.speech.voice == "en-gb"
    assert cfg.ui.default_emotion == "sleepy"
    assert not hasattr(cfg.ui, "colour")


def test_empty_file_uses_defaults(tmp_path) -> None:
    path = tmp_path / "client.yaml"
    path.write_text("")
    assert load_config(path) == ClientConfig()


def test_invalid_yaml_uses_defaults(tmp_path) -> None:
    path = tmp_path / "client.yaml"
    path.write_text("server: [unclosed\n")
    assert load_config(path) == ClientConfig()


def test_non_mapping_section_uses_defaults(tmp_path) -> None:
    path = tmp_path / "client.yaml"
    path.write_text("server: just-a-string\n")
    assert load_config(path) == ClientConfig()
