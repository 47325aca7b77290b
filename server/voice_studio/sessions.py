"""Bookkeeping for realtime sessions and generation outcomes."""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass
from typing import Any

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _Session:
    websocket: Any
    connected_mono_ms: int
    requests: int = 0


class SessionRegistry:
    """Tracks active /ws sessions and per-process request counters.

    Sessions never share state with each other; the registry only counts.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, _Session] = {}
        self._ids = itertools.count(1)
        self._registered = 0
        self._unregistered = 0
        self._generated = 0
        self._rejected = 0
        self._failed = 0
        self._lock = asyncio.Lock()

    async def register(self, websocket: Any) -> str:
        async with self._lock:
            session_id = f"s{next(self._ids)}"
            self._sessions[session_id] = _Session(
                websocket=websocket,
                connected_mono_ms=int(time.monotonic() * 1000),
            )
            self._registered += 1
            log.info(
                "Session %s connected (%d active)", session_id, len(self._sessions)
            )
            return session_id

    async def unregister(self, session_id: str) -> None:
        async with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is None:
                return
            self._unregistered += 1
            log.info(
                "Session %s disconnected after %d requests (%d active)",
                session_id,
                session.requests,
                len(self._sessions),
            )

    def record_request(self, session_id: str | None, outcome: str) -> None:
        """Count one finished request: ``generated``, ``rejected`` or ``failed``."""
        if outcome == "generated":
            self._generated += 1
        elif outcome == "rejected":
            self._rejected += 1
        elif outcome == "failed":
            self._failed += 1
        else:
            raise ValueError(f"unknown outcome: {outcome!r}")
        if session_id is not None:
            session = self._sessions.get(session_id)
            if session is not None:
                session.requests += 1

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    def snapshot(self) -> dict[str, Any]:
        return {
            "active_sessions": len(self._sessions),
            "registered": self._registered,
            "unregistered": self._unregistered,
            "generated": self._generated,
            "rejected": self._rejected,
            "failed": self._failed,
        }
