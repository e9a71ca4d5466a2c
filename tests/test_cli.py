"""Tests for CLI helpers."""

import pytest

from fakes import FakeAI, quota_error
from mentora.chat.orchestrator import ResponseOrchestrator
from mentora.cli import _status_line


@pytest.mark.asyncio
async def test_status_line_only_after_fallback(store, fallback):
    ok = ResponseOrchestrator(ai=FakeAI(["resposta"]), memory=store, fallback=fallback)
    await ok.respond("x", [], "olá", lambda _: None, "programming", user_id="u", session_id="s")
    assert _status_line(ok) is None

    failing = ResponseOrchestrator(ai=FakeAI(error=quota_error()), memory=store, fallback=fallback)
    await failing.respond("x", [], "olá", lambda _: None, "programming", user_id="u", session_id="s")
    assert _status_line(failing) in fallback.catalog.reconnecting_lines

    await ok.wait_for_background()
    await failing.wait_for_background()
