"""WebSocket /ws endpoint: realtime voice generation.

Protocol:
    Client → Server:
        {"type": "generate_voice", "text": "...", "emotion": "happy", "intensity": 3}
        {"type": "ping"}

    Server → Client:
        {"type": "voice_config", "text": "...", "rate": 1.2, "pitch": 1.3,
         "volume": 1.0, "voice": "...", "intensity": 3}
        {"type": "voice_generated", "success": true, "emotion": "happy",
         "intensity": 3, "originalText": "...", "modifiedText": "..."}
        {"type": "error", "message": "..."}
        {"type": "pong"}

Per request the server sends ``voice_config`` (always, before any server-side
speech) followed by exactly one of ``voice_generated`` or ``error``.  A
validation failure sends only ``error``.
"""

from __future__ import annotations

import contextlib
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from voice_studio.generation import GenerationError, generate, parse_generation_request
from voice_studio.sessions import SessionRegistry
from voice_studio.tts.engine import SpeechEngine
from voice_studio.voices import VoiceParameters

log = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def realtime(ws: WebSocket):
    """Bidirectional generation channel; requests are handled in arrival order."""
    await ws.accept()
    registry: SessionRegistry = ws.app.state.session_registry
    engine: SpeechEngine = ws.app.state.speech_engine
    session_id = await registry.register(ws)

    try:
        while True:
            raw = await ws.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                log.debug("Ignoring non-JSON message on %s", session_id)
                continue
            if not isinstance(msg, dict):
                log.debug("Ignoring non-object message on %s", session_id)
                continue

            msg_type = msg.get("type", "")
            if msg_type == "generate_voice":
                await _handle_generate(ws, engine, registry, session_id, msg)
            elif msg_type == "ping":
                await ws.send_json({"type": "pong"})
            else:
                log.debug("Unknown message type: %s", msg_type)

    except WebSocketDisconnect:
        log.debug("WebSocket %s closed by client", session_id)
    except Exception:
        log.exception("Realtime WebSocket error (%s)", session_id)
        with contextlib.suppress(Exception):
            await ws.send_json({"type": "error", "message": "Internal server error"})
    finally:
        await registry.unregister(session_id)


async def _handle_generate(
    ws: WebSocket,
    engine: SpeechEngine,
    registry: SessionRegistry,
    session_id: str,
    msg: dict,
) -> None:
    try:
        request = parse_generation_request(msg)
    except GenerationError as e:
        registry.record_request(session_id, "rejected")
        await ws.send_json({"type": "error", "message": e.message})
        return

    async def send_config(params: VoiceParameters) -> None:
        # Sent before speaking so the client can fall back to local speech.
        await ws.send_json({"type": "voice_config", **params.to_dict()})

    try:
        result = await generate(request, engine, on_config=send_config)
    except GenerationError as e:
        registry.record_request(session_id, "failed")
        await ws.send_json({"type": "error", "message": e.message})
        return

    registry.record_request(session_id, "generated")
    await ws.send_json({"type": "voice_generated", **result.to_payload()})
