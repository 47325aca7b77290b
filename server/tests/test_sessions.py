"""Tests for realtime session bookkeeping."""

from __future__ import annotations

import pytest

from voice_studio.sessions import SessionRegistry


@pytest.mark.asyncio
async def test_register_assigns_distinct_ids():
    reg = SessionRegistry()

    a = await reg.register(object())
    b = await reg.register(object())

    assert a != b
    assert reg.active_sessions == 2


@pytest.mark.asyncio
async def test_unregister_is_idempotent():
    reg = SessionRegistry()
    sid = await reg.register(object())

    await reg.unregister(sid)
    await reg.unregister(sid)

    snap = reg.snapshot()
    assert snap["active_sessions"] == 0
    assert snap["registered"] == 1
    assert snap["unregistered"] == 1


@pytest.mark.asyncio
async def test_record_request_counts_outcomes():
    reg = SessionRegistry()
    sid = await reg.register(object())

    reg.record_request(sid, "generated")
    reg.record_request(sid, "failed")
    reg.record_request(None, "rejected")
    reg.record_request("gone", "generated")

    snap = reg.snapshot()
    assert snap["generated"] == 2
    assert snap["failed"] == 1
    assert snap["rejected"] == 1


def test_record_request_rejects_unknown_outcome():
    reg = SessionRegistry()
    with pytest.raises(ValueError, match="unknown outcome"):
        reg.record_request(None, "skipped")
