"""Realtime session: keeps the /ws connection up and feeds the controller."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import AsyncIterator, Protocol, cast

from voice_studio_client.controller import FallbackController
from voice_studio_client.state import ConnectionStatus

log = logging.getLogger(__name__)

RECONNECT_BACKOFF_S = 1.5


class _WebSocketConn(Protocol):
    async def send(self, message: str) -> None: ...
    async def close(self) -> None: ...
    def __aiter__(self) -> AsyncIterator[str]: ...


class StudioSession:
    """Owns the WebSocket; reconnects after drops and reports status changes."""

    def __init__(
        self,
        server_url: str,
        *,
        reconnect_backoff_s: float = RECONNECT_BACKOFF_S,
    ) -> None:
        self._server_url = server_url.rstrip("/")
        self._reconnect_backoff_s = reconnect_backoff_s
        self._controller: FallbackController | None = None
        self._ws: _WebSocketConn | None = None
        self._reconnect_task: asyncio.Task | None = None
        self._receive_task: asyncio.Task | None = None
        self._connected = False
        self._connected_event = asyncio.Event()
        self._run = False

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def ws_url(self) -> str:
        base = self._server_url.replace("http://", "ws://").replace(
            "https://", "wss://"
        )
        return f"{base}/ws"

    def attach(self, controller: FallbackController) -> None:
        self._controller = controller

    async def start(self) -> None:
        """Start background connection management for the /ws channel."""
        if self._run:
            return
        self._run = True
        self._set_status(ConnectionStatus.CONNECTING)
        if self._reconnect_task is None or self._reconnect_task.done():
            self._reconnect_task = asyncio.create_task(self._connection_loop())

    async def stop(self) -> None:
        self._run = False

        if self._reconnect_task and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reconnect_task
            self._reconnect_task = None

        if self._receive_task and not self._receive_task.done():
            self._receive_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._receive_task
            self._receive_task = None

        if self._ws:
            with contextlib.suppress(Exception):
                await self._ws.close()
            self._ws = None

        self._mark_disconnected("stop")
        log.info("Session closed")

    async def wait_connected(self, timeout: float | None = None) -> bool:
        try:
            await asyncio.wait_for(self._connected_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def send(self, payload: dict) -> None:
        """Send one JSON message; raises ConnectionError when offline."""
        if not self._ws or not self._connected:
            raise ConnectionError("not connected")
        try:
            await self._ws.send(json.dumps(payload))
        except Exception:
            self._mark_disconnected("send")
            raise

    # -- server receive ------------------------------------------------------

    async def _receive_loop(self) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            async for raw in ws:
                try:
                    msg = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                if not isinstance(msg, dict):
                    continue
                if self._controller is not None:
                    await self._controller.handle_message(msg)
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception("Session receive loop error")
        finally:
            if self._ws is ws:
                self._mark_disconnected("receive_done")

    async def _connection_loop(self) -> None:
        """Maintain websocket connection and auto-reconnect on errors."""
        while self._run:
            if not self._connected:
                await self._connect_once()
                if not self._connected:
                    await asyncio.sleep(self._reconnect_backoff_s)
                    continue
            await asyncio.sleep(0.2)

    async def _connect_once(self) -> None:
        try:
            import websockets

            if self._receive_task is not None and not self._receive_task.done():
                self._receive_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._receive_task
            if self._ws is not None:
                with contextlib.suppress(Exception):
                    await self._ws.close()
                self._ws = None

            self._ws = cast(
                _WebSocketConn,
                await websockets.connect(
                    self.ws_url,
                    ping_interval=20,
                    ping_timeout=10,
                ),
            )
            self._connected = True
            self._connected_event.set()
            self._set_status(ConnectionStatus.CONNECTED)
            if self._receive_task is None or self._receive_task.done():
                self._receive_task = asyncio.create_task(self._receive_loop())
            log.info("Session connected to %s", self.ws_url)
        except Exception as exc:
            self._connected = False
            self._ws = None
            log.warning("Session connect failed: %s", exc)

    def _mark_disconnected(self, reason: str) -> None:
        if self._connected:
            log.warning("Session disconnected (%s)", reason)
        self._connected = False
        self._connected_event.clear()
        self._set_status(ConnectionStatus.DISCONNECTED)

    def _set_status(self, status: ConnectionStatus) -> None:
        if self._controller is not None:
            self._controller.set_connection(status)
