"""HTTP API: server config, emotion catalog, one-shot POST /api/speak."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from voice_studio.generation import GenerationError, generate, parse_generation_request
from voice_studio.schemas import ServerConfigResponse
from voice_studio.voices import EMOTIONS, emotion_profiles, intensity_levels

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.get("/config")
async def get_config(request: Request) -> JSONResponse:
    """Public configuration so clients can decide whether to speak locally."""
    body = ServerConfigResponse(
        server_tts_disabled=bool(request.app.state.server_tts_disabled)
    )
    return JSONResponse(body.model_dump(by_alias=True))


@router.get("/emotions")
async def list_emotions() -> list[str]:
    return list(EMOTIONS)


@router.get("/emotions/profiles")
async def list_emotion_profiles() -> dict[str, Any]:
    """Full emotion table, so clients need no copy of their own."""
    return {"emotions": emotion_profiles(), "intensities": intensity_levels()}


@router.post("/speak")
async def speak(request: Request) -> JSONResponse:
    """One-shot generation: same validation and errors as the /ws channel."""
    registry = request.app.state.session_registry
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    try:
        gen_request = parse_generation_request(payload)
    except GenerationError as e:
        registry.record_request(None, "rejected")
        return JSONResponse({"error": e.message}, status_code=e.status_code)

    try:
        result = await generate(gen_request, request.app.state.speech_engine)
    except GenerationError as e:
        registry.record_request(None, "failed")
        return JSONResponse({"error": e.message}, status_code=e.status_code)

    registry.record_request(None, "generated")
    return JSONResponse(result.to_payload())
