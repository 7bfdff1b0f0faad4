"""
Security monitor middleware tests.

WHAT: Rejections are counted per IP and reported once at the threshold.
The monitor never changes the response, even when Redis fails.
"""

import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient

from lexshield.middleware.security_monitor import SecurityMonitorMiddleware


class RecordingSink:
    def __init__(self):
        self.events = []

    async def report(self, event):
        self.events.append(event)


def build_app(sink, redis_factory, threshold=3):
    app = FastAPI()
    app.add_middleware(
        SecurityMonitorMiddleware,
        sink=sink,
        threshold=threshold,
        window_seconds=60,
        redis_factory=redis_factory,
    )

    @app.get("/denied")
    async def denied():
        return JSONResponse(status_code=401, content={"error": True})

    @app.get("/ok")
    async def ok():
        return {"ok": True}

    return app


async def hit(app, path, times=1, ip="198.51.100.7"):
    responses = []
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        for _ in range(times):
            responses.append(await ac.get(path, headers={"X-Real-IP": ip}))
    return responses


class TestSecurityMonitor:
    @pytest.mark.asyncio
    async def test_reports_once_at_threshold(self, fake_redis):
        sink = RecordingSink()

        async def factory():
            return fake_redis

        await hit(build_app(sink, factory), "/denied", times=5)

        assert len(sink.events) == 1
        event = sink.events[0]
        assert event.event_type == "repeated_rejections"
        assert event.ip_address == "198.51.100.7"
        assert event.count == 3
        assert event.status_code == 401
        assert fake_redis.data["security:rejections:198.51.100.7"] == "5"
        assert fake_redis.ttls["security:rejections:198.51.100.7"] == 60

    @pytest.mark.asyncio
    async def test_counts_per_ip(self, fake_redis):
        sink = RecordingSink()

        async def factory():
            return fake_redis

        app = build_app(sink, factory)
        await hit(app, "/denied", times=2, ip="203.0.113.1")
        await hit(app, "/denied", times=2, ip="203.0.113.2")

        assert sink.events == []

    @pytest.mark.asyncio
    async def test_success_not_counted(self, fake_redis):
        async def factory():
            return fake_redis

        await hit(build_app(RecordingSink(), factory), "/ok", times=5)

        assert fake_redis.data == {}

    @pytest.mark.asyncio
    async def test_redis_failure_keeps_response(self):
        async def broken_factory():
            raise ConnectionError("redis down")

        responses = await hit(build_app(RecordingSink(), broken_factory), "/denied")

        assert responses[0].status_code == 401
