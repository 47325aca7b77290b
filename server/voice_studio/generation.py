"""Validate → resolve → speak: one generation request, shared by /ws and /api/speak."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import pydantic

from voice_studio.schemas import GenerationRequest, GenerationResult
from voice_studio.tts.engine import SpeechEngine
from voice_studio.tts.speaker import SpeechError
from voice_studio.voices import VoiceParameters, is_known_emotion, resolve

log = logging.getLogger(__name__)

TEXT_AND_EMOTION_REQUIRED = "Text and emotion are required"
FAILED_TO_GENERATE = "Failed to generate voice"


class GenerationError(Exception):
    """Client-facing failure of a generation request."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def parse_generation_request(payload: Any) -> GenerationRequest:
    """Validate a raw payload; unknown emotions and non-object bodies count as missing."""
    if not isinstance(payload, Mapping):
        raise GenerationError(TEXT_AND_EMOTION_REQUIRED, 400)
    try:
        request = GenerationRequest.model_validate(dict(payload))
    except pydantic.ValidationError:
        raise GenerationError(TEXT_AND_EMOTION_REQUIRED, 400) from None
    if not request.text or not is_known_emotion(request.emotion):
        raise GenerationError(TEXT_AND_EMOTION_REQUIRED, 400)
    return request


async def generate(
    request: GenerationRequest,
    engine: SpeechEngine,
    *,
    on_config: Callable[[VoiceParameters], Awaitable[None]] | None = None,
) -> GenerationResult:
    """Resolve parameters, publish them via *on_config*, then speak.

    Any failure after validation is reported as ``FAILED_TO_GENERATE``; the
    cause is logged here and never reaches the client.
    """
    text = request.text or ""
    emotion = request.emotion or ""
    try:
        params = resolve(text, emotion, request.intensity)
        if on_config is not None:
            await on_config(params)
        await engine.speak(params, emotion)
    except SpeechError as exc:
        log.warning("Speech failed (emotion=%s): %s", emotion, exc)
        raise GenerationError(FAILED_TO_GENERATE, 500) from exc
    except Exception as exc:
        log.exception("Voice generation failed (emotion=%s)", emotion)
        raise GenerationError(FAILED_TO_GENERATE, 500) from exc

    log.info(
        "Generated voice (emotion=%s intensity=%d chars=%d server_speech=%s)",
        emotion,
        params.intensity,
        len(text),
        engine.enabled,
    )
    return GenerationResult(
        success=True,
        emotion=emotion,
        intensity=params.intensity,
        original_text=text,
        modified_text=params.text,
    )
