"""Request/response models shared by the HTTP and WebSocket surfaces."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GenerationRequest(BaseModel):
    """Text + emotion (+ optional intensity) to be voiced."""

    model_config = ConfigDict(extra="ignore")

    text: str | None = None
    emotion: str | None = None
    intensity: Any = None


class GenerationResult(BaseModel):
    """Terminal outcome of one generation request."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    emotion: str
    intensity: int = Field(ge=1, le=5)
    original_text: str = Field(alias="originalText")
    modified_text: str = Field(alias="modifiedText")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class ServerConfigResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    server_tts_disabled: bool = Field(alias="serverTTSDisabled")
