"""Async client for the voice studio HTTP API."""

from __future__ import annotations

import logging

import httpx

log = logging.getLogger(__name__)


class StudioApiError(RuntimeError):
    """Raised when the server returns invalid or failed responses."""


class StudioApiClient:
    """Minimal async wrapper around `/healthz` + `/api/*`."""

    def __init__(
        self,
        base_url: str,
        timeout_s: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout_s,
                transport=self._transport,
            )

    async def stop(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def health_check(self) -> bool:
        client = self._require_client()
        try:
            resp = await client.get("/healthz")
        except httpx.HTTPError:
            return False
        return resp.status_code == 200

    async def fetch_server_tts_disabled(self) -> bool:
        """Fetch `/api/config` once at startup; unreachable means server speaks."""
        client = self._require_client()
        try:
            resp = await client.get("/api/config")
        except httpx.HTTPError as e:
            log.warning("could not fetch /api/config: %s", e)
            return False
        if resp.status_code != 200:
            log.warning("/api/config returned %s", resp.status_code)
            return False
        try:
            body = resp.json()
        except ValueError:
            return False
        return isinstance(body, dict) and bool(body.get("serverTTSDisabled"))

    async def list_emotions(self) -> list[str]:
        body = await self._get_json("/api/emotions")
        if not isinstance(body, list) or not all(isinstance(e, str) for e in body):
            raise StudioApiError("invalid /api/emotions payload: expected list of names")
        return body

    async def emotion_profiles(self) -> dict:
        body = await self._get_json("/api/emotions/profiles")
        if not isinstance(body, dict) or not isinstance(body.get("emotions"), list):
            raise StudioApiError("invalid /api/emotions/profiles payload")
        return body

    async def speak(self, text: str, emotion: str, intensity: int | None = None) -> dict:
        """One-shot generation without the realtime channel."""
        client = self._require_client()
        payload: dict[str, object] = {"text": text, "emotion": emotion}
        if intensity is not None:
            payload["intensity"] = intensity
        try:
            resp = await client.post("/api/speak", json=payload)
        except httpx.HTTPError as e:
            msg = str(e).strip() or e.__class__.__name__
            raise StudioApiError(f"request failed: {msg}") from e

        if resp.status_code != 200:
            detail = self._extract_error(resp)
            raise StudioApiError(f"/api/speak returned {resp.status_code}: {detail}")
        try:
            body = resp.json()
        except ValueError as e:
            raise StudioApiError("invalid JSON response from /api/speak") from e
        if not isinstance(body, dict) or body.get("success") is not True:
            raise StudioApiError("invalid /api/speak payload: missing success")
        return body

    async def _get_json(self, path: str) -> object:
        client = self._require_client()
        try:
            resp = await client.get(path)
        except httpx.HTTPError as e:
            msg = str(e).strip() or e.__class__.__name__
            raise StudioApiError(f"request failed: {msg}") from e
        if resp.status_code != 200:
            detail = self._extract_error(resp)
            raise StudioApiError(f"{path} returned {resp.status_code}: {detail}")
        try:
            return resp.json()
        except ValueError as e:
            raise StudioApiError(f"invalid JSON response from {path}") from e

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("studio api client not started")
        return self._client

    @staticmethod
    def _extract_error(resp: httpx.Response) -> str:
        try:
            data = resp.json()
            if isinstance(data, dict):
                for key in ("error", "detail"):
                    val = data.get(key)
                    if isinstance(val, str) and val:
                        return val
        except ValueError:
            pass
        text = resp.text.strip()
        return text[:160] if text else "unknown error"
