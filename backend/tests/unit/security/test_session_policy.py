"""
Tests for the session timeout engine.

WHY: Covers both windows, the warning flags, the activity record
lifecycle, and the fail-open behavior on store errors.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from lexshield.security.session_policy import SessionPolicy, SessionPolicyEngine, TimeoutStatus


MINUTE = 60_000
HOUR = 60 * MINUTE
NOW = 1_800_000_000_000
KEY = "session:activity:7"


@pytest.fixture
def engine(kv_store):
    return SessionPolicyEngine(kv_store, policy=SessionPolicy(), store_timeout_seconds=0.5)


class TestAbsoluteTimeout:
    @pytest.mark.asyncio
    async def test_expired_regardless_of_recent_activity(self, engine, kv_store):
        kv_store.data[KEY] = str(NOW - MINUTE)

        result = await engine.check_timeout(7, NOW - 25 * HOUR, now=NOW)

        assert result.status == TimeoutStatus.ABSOLUTE_EXPIRED
        assert KEY not in kv_store.data

    @pytest.mark.asyncio
    async def test_remember_me_extends_absolute_window(self, engine, kv_store):
        kv_store.data[KEY] = str(NOW - MINUTE)

        result = await engine.check_timeout(7, NOW - 25 * HOUR, now=NOW, remember_me=True)

        assert result.status == TimeoutStatus.OK

    @pytest.mark.asyncio
    async def test_absolute_warning(self, engine, kv_store):
        kv_store.data[KEY] = str(NOW - MINUTE)

        result = await engine.check_timeout(7, NOW - 24 * HOUR + 2 * MINUTE, now=NOW)

        assert result.status == TimeoutStatus.OK
        assert result.absolute_warning is True
        assert result.absolute_remaining_ms == 2 * MINUTE


class TestIdleTimeout:
    @pytest.mark.asyncio
    async def test_idle_expired(self, engine, kv_store):
        kv_store.data[KEY] = str(NOW - 31 * MINUTE)

        result = await engine.check_timeout(7, NOW - HOUR, now=NOW)

        assert result.status == TimeoutStatus.IDLE_EXPIRED
        assert KEY not in kv_store.data

    @pytest.mark.asyncio
    async def test_missing_record_falls_back_to_issued_at(self, engine, kv_store):
        result = await engine.check_timeout(7, NOW - 31 * MINUTE, now=NOW)

        assert result.status == TimeoutStatus.IDLE_EXPIRED

    @pytest.mark.asyncio
    async def test_ok_refreshes_activity(self, engine, kv_store):
        kv_store.data[KEY] = str(NOW - 10 * MINUTE)

        result = await engine.check_timeout(7, NOW - HOUR, now=NOW)

        assert result.ok
        assert kv_store.data[KEY] == str(NOW)
        assert kv_store.ttls[KEY] == 86400
        assert result.idle_remaining_ms == 20 * MINUTE
        assert result.idle_warning is False

    @pytest.mark.asyncio
    async def test_idle_warning_near_deadline(self, engine, kv_store):
        kv_store.data[KEY] = str(NOW - 27 * MINUTE)

        result = await engine.check_timeout(7, NOW - HOUR, now=NOW)

        assert result.ok
        assert result.idle_warning is True
        assert result.idle_remaining_ms == 3 * MINUTE

    @pytest.mark.asyncio
    async def test_exactly_at_deadline_is_still_valid(self, engine, kv_store):
        kv_store.data[KEY] = str(NOW - 30 * MINUTE)

        result = await engine.check_timeout(7, NOW - HOUR, now=NOW)

        assert result.status == TimeoutStatus.OK


class TestFailOpen:
    @pytest.mark.asyncio
    async def test_store_error_allows_request(self):
        store = AsyncMock()
        store.get.side_effect = ConnectionError("redis down")
        engine = SessionPolicyEngine(store, policy=SessionPolicy())

        result = await engine.check_timeout(7, NOW - HOUR, now=NOW)

        assert result.status == TimeoutStatus.OK
        assert result.degraded is True

    @pytest.mark.asyncio
    async def test_store_timeout_allows_request(self):
        async def slow_get(key):
            await asyncio.sleep(1)

        store = AsyncMock()
        store.get.side_effect = slow_get
        engine = SessionPolicyEngine(store, policy=SessionPolicy(), store_timeout_seconds=0.01)

        result = await engine.check_timeout(7, NOW - HOUR, now=NOW)

        assert result.ok
        assert result.degraded is True

    @pytest.mark.asyncio
    async def test_store_outage_does_not_extend_absolute_window(self):
        store = AsyncMock()
        store.get.side_effect = ConnectionError("redis down")
        store.delete.side_effect = ConnectionError("redis down")
        engine = SessionPolicyEngine(store, policy=SessionPolicy())

        result = await engine.check_timeout(7, NOW - 25 * HOUR, now=NOW)

        assert result.status == TimeoutStatus.ABSOLUTE_EXPIRED
        store.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_idle_verdict(self):
        store = AsyncMock()
        store.get.return_value = str(NOW - 40 * MINUTE)
        store.delete.side_effect = ConnectionError("redis down")
        engine = SessionPolicyEngine(store, policy=SessionPolicy())

        result = await engine.check_timeout(7, NOW - HOUR, now=NOW)

        assert result.status == TimeoutStatus.IDLE_EXPIRED

    @pytest.mark.asyncio
    async def test_failed_refresh_still_allows_request(self):
        store = AsyncMock()
        store.get.return_value = str(NOW - MINUTE)
        store.set.side_effect = ConnectionError("redis down")
        engine = SessionPolicyEngine(store, policy=SessionPolicy())

        result = await engine.check_timeout(7, NOW - HOUR, now=NOW)

        assert result.ok
        assert result.degraded is True


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_record_activity(self, engine, kv_store):
        await engine.record_activity(7, at=NOW)
        assert kv_store.data[KEY] == str(NOW)

    @pytest.mark.asyncio
    async def test_clear_session_activity(self, engine, kv_store):
        kv_store.data[KEY] = str(NOW)
        await engine.clear_session_activity(7)
        assert KEY not in kv_store.data

    @pytest.mark.asyncio
    async def test_lifecycle_hooks_swallow_store_errors(self):
        store = AsyncMock()
        store.set.side_effect = ConnectionError("redis down")
        store.delete.side_effect = ConnectionError("redis down")
        engine = SessionPolicyEngine(store, policy=SessionPolicy())

        await engine.record_activity(7)
        await engine.clear_session_activity(7)
