"""Voice studio client entry point.

Usage:
    python -m voice_studio_client                              # interactive prompt
    python -m voice_studio_client "Hello world" --emotion happy --intensity 4
    python -m voice_studio_client "Hello world" --http         # one-shot POST /api/speak
    python -m voice_studio_client --server http://10.0.0.20:3000 --config client.yaml

Interactive commands:
    /emotion NAME   select emotion        /intensity N   select intensity (1-5)
    /emotions       list emotions         /again         play the last text again
    /quit           exit                  anything else  is spoken
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any

from voice_studio_client.api_client import StudioApiClient, StudioApiError
from voice_studio_client.config import ClientConfig, load_config
from voice_studio_client.controller import FallbackController
from voice_studio_client.local_speech import LocalSpeaker
from voice_studio_client.session import StudioSession
from voice_studio_client.state import VoiceConfig
from voice_studio_client.view import ConsoleView

log = logging.getLogger("voice_studio_client")

RESULT_TIMEOUT_S = 120.0

_USAGE = {
    "/emotion": "usage: /emotion NAME",
    "/intensity": "usage: /intensity N (1-5)",
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Voice Emotion Studio client")
    p.add_argument("text", nargs="?", default=None, help="Speak this text and exit")
    p.add_argument("--server", default=None, help="Server base URL (e.g. http://localhost:3000)")
    p.add_argument("--emotion", default=None, help="Emotion to speak with")
    p.add_argument("--intensity", type=int, default=None, help="Intensity 1-5")
    p.add_argument(
        "--http",
        action="store_true",
        help="Send TEXT with one POST /api/speak instead of the realtime channel",
    )
    p.add_argument("--config", default=None, help="YAML config file")
    p.add_argument("--log-level", default="WARNING", help="Log level")
    return p.parse_args(argv)


def apply_overrides(cfg: ClientConfig, args: argparse.Namespace) -> ClientConfig:
    if args.server:
        cfg.server.url = args.server
    if args.emotion:
        cfg.ui.default_emotion = args.emotion
    if args.intensity is not None:
        cfg.ui.default_intensity = args.intensity
    return cfg


async def load_catalog(
    api: StudioApiClient, controller: FallbackController, view: ConsoleView
) -> dict[str, Any] | None:
    """Fetch the server's emotion table once; the client keeps no copy.

    Falls back to the plain ``/api/emotions`` list when the full profiles
    are unavailable. Returns the full catalog, or None without it.
    """
    try:
        catalog = await api.emotion_profiles()
    except StudioApiError as e:
        log.warning("emotion catalog unavailable: %s", e)
        try:
            controller.set_catalog(await api.list_emotions())
        except StudioApiError as e2:
            log.warning("emotion list unavailable: %s", e2)
        return None
    emotions = [p["emotion"] for p in catalog["emotions"] if "emotion" in p]
    labels = {
        int(i["level"]): str(i["label"])
        for i in catalog.get("intensities", [])
        if "level" in i and "label" in i
    }
    controller.set_catalog(emotions, labels)
    view.set_emotion_labels(
        {
            p["emotion"]: f"{p.get('emoji', '')} {p.get('label', p['emotion'])}".strip()
            for p in catalog["emotions"]
            if "emotion" in p
        }
    )
    return catalog


def config_from_catalog(
    catalog: dict[str, Any] | None, result: dict[str, Any]
) -> VoiceConfig | None:
    """Rebuild voice parameters for an HTTP result from the catalog prosody."""
    if not catalog:
        return None
    emotion = result.get("emotion")
    profile = next(
        (p for p in catalog.get("emotions", []) if p.get("emotion") == emotion), None
    )
    if profile is None:
        return None
    intensity = result.get("intensity")
    prosody = profile.get("intensity", {}).get(str(intensity)) or profile.get("base")
    if not isinstance(prosody, dict):
        return None
    return VoiceConfig.from_message(
        {
            "text": result.get("modifiedText", ""),
            "rate": prosody.get("rate"),
            "pitch": prosody.get("pitch"),
            "volume": prosody.get("volume"),
            "voice": profile.get("voice", ""),
            "intensity": intensity,
        }
    )


async def run_once(
    controller: FallbackController,
    speaker: LocalSpeaker,
    text: str,
    emotion: str,
    intensity: int,
) -> int:
    if not await controller.submit(text, emotion, intensity):
        return 1
    if not await controller.wait_until_idle(timeout=RESULT_TIMEOUT_S):
        log.warning("no result after %.0fs", RESULT_TIMEOUT_S)
        return 1
    await speaker.wait()
    return 0


async def run_http(
    api: StudioApiClient,
    speaker: LocalSpeaker,
    catalog: dict[str, Any] | None,
    *,
    server_tts_disabled: bool,
    text: str,
    emotion: str,
    intensity: int,
) -> int:
    """One-shot generation over HTTP; speaks locally if the server does not."""
    try:
        result = await api.speak(text, emotion, intensity)
    except StudioApiError as e:
        print(f"[!] {e}")
        return 1
    print(f"[+] Voice generated with {result.get('emotion', emotion)} emotion!")
    print(f"Modified:  {result.get('modifiedText', '')}")
    if not server_tts_disabled:
        return 0

    config = config_from_catalog(catalog, result)
    if config is None:
        print("[!] No voice parameters available for local speech")
        return 1
    if not await speaker.speak(config.clamped()):
        print("[!] Local speech synthesis not supported")
        return 1
    await speaker.wait()
    return 0


async def handle_command(
    controller: FallbackController, line: str, emotion: str, intensity: int
) -> tuple[str, int]:
    """Apply one interactive line; returns the (emotion, intensity) selection."""
    parts = line.split(maxsplit=1)
    command = parts[0]
    arg = parts[1].strip() if len(parts) > 1 else ""

    if command == "/emotions":
        print(", ".join(controller.emotions) or "(catalog unavailable)")
    elif command == "/emotion":
        if arg:
            emotion = arg
        else:
            print(_USAGE[command])
    elif command == "/intensity":
        try:
            intensity = int(arg)
        except ValueError:
            print(_USAGE[command])
    elif command == "/again":
        await controller.play_again()
        await controller.wait_until_idle(timeout=RESULT_TIMEOUT_S)
    elif command.startswith("/"):
        print(f"unknown command: {command}")
    elif await controller.submit(line, emotion, intensity):
        await controller.wait_until_idle(timeout=RESULT_TIMEOUT_S)
    return emotion, intensity


async def run_interactive(
    controller: FallbackController, emotion: str, intensity: int
) -> int:
    while True:
        try:
            line = await asyncio.to_thread(input, f"[{emotion}:{intensity}] > ")
        except (EOFError, KeyboardInterrupt):
            return 0
        line = line.strip()
        if not line:
            continue
        if line in {"/quit", "/exit"}:
            return 0
        emotion, intensity = await handle_command(controller, line, emotion, intensity)


async def async_main(args: argparse.Namespace) -> int:
    cfg = apply_overrides(load_config(args.config), args)

    api = StudioApiClient(cfg.server.url, timeout_s=cfg.server.http_timeout_s)
    speaker = LocalSpeaker(
        binary=cfg.speech.binary,
        voice=cfg.speech.voice,
        base_wpm=cfg.speech.base_wpm,
    )
    session = StudioSession(
        cfg.server.url, reconnect_backoff_s=cfg.server.reconnect_backoff_s
    )
    controller = FallbackController(
        session.send, speaker, max_text_chars=cfg.ui.max_text_chars
    )
    view = ConsoleView(show_notifications=cfg.ui.show_notifications)
    controller.subscribe(view)
    session.attach(controller)

    await api.start()
    try:
        if not await api.health_check():
            log.warning("server at %s is not responding to /healthz", cfg.server.url)
        controller.set_server_tts_disabled(await api.fetch_server_tts_disabled())
        catalog = await load_catalog(api, controller, view)

        if args.http:
            if args.text is None:
                print("[!] --http needs TEXT")
                return 2
            return await run_http(
                api,
                speaker,
                catalog,
                server_tts_disabled=controller.state.server_tts_disabled,
                text=args.text,
                emotion=cfg.ui.default_emotion,
                intensity=cfg.ui.default_intensity,
            )

        await session.start()
        if not await session.wait_connected(timeout=cfg.server.connect_timeout_s):
            log.warning("still not connected to %s", cfg.server.url)

        if args.text is not None:
            return await run_once(
                controller,
                speaker,
                args.text,
                cfg.ui.default_emotion,
                cfg.ui.default_intensity,
            )
        return await run_interactive(
            controller, cfg.ui.default_emotion, cfg.ui.default_intensity
        )
    finally:
        await session.stop()
        await api.stop()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
    )
    try:
        return asyncio.run(async_main(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
