"""
Unit tests for the in-memory session store.
"""
import asyncio
import re
from unittest.mock import patch

import pytest

from mailpdf.services.session_service import SESSION_TOKEN_LENGTH, SessionStore

TTL = 3600


@pytest.fixture
def store(clock):
    return SessionStore(ttl_seconds=TTL, clock=clock)


class TestCreateAndResolve:

    def test_create_returns_96_hex_chars(self, store, mock_credentials):
        token = store.create(mock_credentials)

        assert len(token) == SESSION_TOKEN_LENGTH == 96
        assert re.fullmatch(r"[0-9a-f]{96}", token)

    def test_tokens_are_unique(self, store, mock_credentials):
        tokens = {store.create(mock_credentials) for _ in range(50)}
        assert len(tokens) == 50

    def test_resolve_returns_original_credentials(self, store, mock_credentials):
        token = store.create(mock_credentials)
        assert store.resolve(token) == mock_credentials

    def test_resolve_unknown_token(self, store):
        assert store.resolve("f" * 96) is None

    def test_resolve_at_exact_ttl_is_still_valid(self, store, clock, mock_credentials):
        token = store.create(mock_credentials)
        clock.advance(TTL)
        assert store.resolve(token) == mock_credentials

    def test_resolve_after_ttl_returns_none_and_evicts(self, store, clock, mock_credentials):
        token = store.create(mock_credentials)
        clock.advance(TTL + 1)

        assert store.resolve(token) is None
        assert len(store) == 0


class TestInvalidate:

    def test_invalidate_removes_session(self, store, mock_credentials):
        token = store.create(mock_credentials)
        store.invalidate(token)
        assert store.resolve(token) is None

    def test_invalidate_unknown_token_does_not_raise(self, store):
        store.invalidate("nope")
        store.invalidate("")

    def test_invalidate_twice(self, store, mock_credentials):
        token = store.create(mock_credentials)
        store.invalidate(token)
        store.invalidate(token)
        assert len(store) == 0


class TestSweep:

    def test_sweep_removes_only_expired(self, store, clock, mock_credentials):
        old_token = store.create(mock_credentials)
        clock.advance(TTL / 2)
        fresh_token = store.create(mock_credentials)
        clock.advance(TTL / 2 + 1)

        removed = store.sweep()

        assert removed == 1
        assert store.resolve(old_token) is None
        assert store.resolve(fresh_token) == mock_credentials

    def test_sweep_empty_store(self, store):
        assert store.sweep() == 0

    def test_sweep_after_lazy_eviction(self, store, clock, mock_credentials):
        token = store.create(mock_credentials)
        clock.advance(TTL + 1)

        assert store.resolve(token) is None
        assert store.sweep() == 0

    @pytest.mark.asyncio
    async def test_run_sweeper_sweeps_on_interval(self, store):
        real_sleep = asyncio.sleep
        calls = []

        async def fast_sleep(seconds):
            calls.append(seconds)
            await real_sleep(0)

        with patch("mailpdf.services.session_service.asyncio.sleep", fast_sleep), \
                patch.object(store, "sweep", wraps=store.sweep) as sweep:
            task = asyncio.create_task(store.run_sweeper(60))
            for _ in range(10):
                await real_sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        assert sweep.call_count >= 2
        assert set(calls) == {60}
