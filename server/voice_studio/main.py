"""Voice studio server entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from voice_studio.config import settings
from voice_studio.routers.realtime import router as realtime_router
from voice_studio.routers.speak import router as speak_router
from voice_studio.sessions import SessionRegistry
from voice_studio.tts.engine import SpeechEngine, create_speech_engine

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the process-wide speech engine and session registry."""
    engine = create_speech_engine(settings)
    app.state.speech_engine = engine
    app.state.session_registry = SessionRegistry()
    # Reported to clients: True means they must speak locally.
    app.state.server_tts_disabled = not engine.enabled
    log.info(
        "Voice studio ready (speech backend=%s server_tts_disabled=%s)",
        engine.backend_name,
        app.state.server_tts_disabled,
    )

    yield

    log.info("Voice studio shutting down")


app = FastAPI(
    title="Voice Emotion Studio",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(speak_router)
app.include_router(realtime_router)


@app.exception_handler(Exception)
async def internal_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    log.error("Unhandled error: %s", exc, exc_info=exc)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


@app.get("/healthz", response_class=PlainTextResponse)
async def healthz() -> str:
    """Liveness check for hosting platforms."""
    return "ok"


@app.get("/health")
async def health():
    """Readiness snapshot: speech engine and session counters."""
    engine: SpeechEngine | None = getattr(app.state, "speech_engine", None)
    registry: SessionRegistry = getattr(app.state, "session_registry", None) or SessionRegistry()
    speech = engine.debug_snapshot() if engine is not None else None
    ok = engine is not None and (not engine.enabled or speech["available"])
    return JSONResponse(
        {
            "status": "ok" if ok else "degraded",
            "server_tts_disabled": bool(
                getattr(app.state, "server_tts_disabled", settings.server_tts_disabled)
            ),
            "speech": speech,
            "sessions": registry.snapshot(),
        },
        status_code=200 if ok else 503,
    )


def main() -> None:
    logging.basicConfig(
        level=settings.log_level_value,
        format="%(asctime)s %(levelname)-8s %(name)s  %(message)s",
    )
    log.info("Voice studio listening on http://%s:%d", settings.host, settings.port)
    uvicorn.run(
        "voice_studio.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
