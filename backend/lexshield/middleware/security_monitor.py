"""
Security monitoring middleware.

WHAT: Counts rejected requests (401/403) per client IP in a Redis window
counter and reports a SecurityEvent once an IP reaches the threshold.

WHY: Repeated rejections from one address (credential stuffing, token
replay, tenant probing) are worth an alert even though each single
rejection is routine.

HOW:
- ``INCR security:rejections:{ip}``; the first increment sets the window TTL
- The event fires exactly when the count reaches the threshold, so one
  burst produces one report per window
- Never blocks or alters the response; every failure is logged and dropped
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Protocol

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from lexshield.core.auth import get_redis
from lexshield.core.config import settings
from lexshield.middleware.request_context import get_client_ip


logger = logging.getLogger(__name__)


MONITORED_STATUS_CODES = frozenset({401, 403})


@dataclass
class SecurityEvent:
    """An anomaly worth reporting."""

    event_type: str
    ip_address: str
    count: int
    window_seconds: int
    path: str
    status_code: int
    request_id: Optional[str] = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AnomalySink(Protocol):
    async def report(self, event: SecurityEvent) -> None:
        ...


class LoggingAnomalySink:
    """Default sink: one WARNING line per event."""

    async def report(self, event: SecurityEvent) -> None:
        logger.warning(
            f"Security anomaly {event.event_type}: {event.count} rejections from "
            f"{event.ip_address} within {event.window_seconds}s",
            extra={
                "event_type": event.event_type,
                "ip": event.ip_address,
                "count": event.count,
                "path": event.path,
                "status_code": event.status_code,
                "request_id": event.request_id,
            },
        )


class SecurityMonitorMiddleware(BaseHTTPMiddleware):
    """
    Watches response status codes for repeated rejections.

    Example:
        app.add_middleware(SecurityMonitorMiddleware, sink=PagerSink())
    """

    def __init__(
        self,
        app,
        sink: Optional[AnomalySink] = None,
        threshold: Optional[int] = None,
        window_seconds: Optional[int] = None,
        redis_factory: Callable[[], Awaitable] = get_redis,
    ):
        super().__init__(app)
        self.sink = sink or LoggingAnomalySink()
        self.threshold = threshold or settings.SECURITY_MONITOR_THRESHOLD
        self.window_seconds = window_seconds or settings.SECURITY_MONITOR_WINDOW_SECONDS
        self.redis_factory = redis_factory

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        if response.status_code in MONITORED_STATUS_CODES:
            try:
                await asyncio.wait_for(
                    self._record_rejection(request, response.status_code),
                    timeout=settings.STORE_TIMEOUT_SECONDS,
                )
            except Exception as e:
                # Fail-open
                logger.error(
                    f"Security monitor failed: {e}",
                    extra={"path": request.url.path, "error": str(e)},
                )

        return response

    async def _record_rejection(self, request: Request, status_code: int) -> None:
        context = getattr(request.state, "context", None)
        ip = context.ip_address if context is not None else get_client_ip(request)

        redis_client = await self.redis_factory()
        key = f"security:rejections:{ip}"
        count = await redis_client.incr(key)
        if count == 1:
            await redis_client.expire(key, self.window_seconds)

        if count == self.threshold:
            await self.sink.report(
                SecurityEvent(
                    event_type="repeated_rejections",
                    ip_address=ip,
                    count=count,
                    window_seconds=self.window_seconds,
                    path=request.url.path,
                    status_code=status_code,
                    request_id=context.request_id if context is not None else None,
                )
            )
