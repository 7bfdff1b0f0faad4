"""
Tests for the step-up authentication gate.

WHY: The gate must deny on store failure. This is the opposite of the
session check, and both are exercised on purpose.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from lexshield.security.step_up import (
    CRITICAL_MAX_AGE_MINUTES,
    GENERAL_MAX_AGE_MINUTES,
    SENSITIVE_MAX_AGE_MINUTES,
    StepUpAuthGate,
)


MINUTE = 60_000
NOW = 1_800_000_000_000


def gate_with(last_auth=None, error=None, timeout=0.5):
    store = AsyncMock()
    if error is not None:
        store.last_auth_timestamp.side_effect = error
    else:
        store.last_auth_timestamp.return_value = last_auth
    return StepUpAuthGate(store, store_timeout_seconds=timeout)


class TestVerifyRecent:
    @pytest.mark.asyncio
    async def test_four_minutes_ago_is_recent(self):
        status = await gate_with(NOW - 4 * MINUTE).verify_recent(7, 5, now=NOW)

        assert status.is_recent is True
        assert status.reason == "recent_authentication"
        assert status.authenticated_at == NOW - 4 * MINUTE
        assert status.expires_at == NOW + MINUTE

    @pytest.mark.asyncio
    async def test_six_minutes_ago_is_too_old(self):
        status = await gate_with(NOW - 6 * MINUTE).verify_recent(7, 5, now=NOW)

        assert status.is_recent is False
        assert status.reason == "authentication_too_old"

    @pytest.mark.asyncio
    async def test_boundary_is_inclusive(self):
        status = await gate_with(NOW - 5 * MINUTE).verify_recent(7, 5, now=NOW)
        assert status.is_recent is True

    @pytest.mark.asyncio
    async def test_no_record(self):
        status = await gate_with(None).verify_recent(7, 5, now=NOW)

        assert status.is_recent is False
        assert status.reason == "no_authentication_record"
        assert status.authenticated_at is None


class TestFailClosed:
    @pytest.mark.asyncio
    async def test_store_error_denies(self):
        status = await gate_with(error=ConnectionError("redis down")).verify_recent(7, 1440, now=NOW)

        assert status.is_recent is False
        assert status.reason == "lookup_failed"

    @pytest.mark.asyncio
    async def test_store_timeout_denies(self):
        async def slow(user_id):
            await asyncio.sleep(1)
            return NOW

        store = AsyncMock()
        store.last_auth_timestamp.side_effect = slow
        gate = StepUpAuthGate(store, store_timeout_seconds=0.01)

        status = await gate.verify_recent(7, 1440, now=NOW)

        assert status.is_recent is False
        assert status.reason == "lookup_failed"


def test_presets():
    assert (CRITICAL_MAX_AGE_MINUTES, SENSITIVE_MAX_AGE_MINUTES, GENERAL_MAX_AGE_MINUTES) == (
        5,
        60,
        1440,
    )
