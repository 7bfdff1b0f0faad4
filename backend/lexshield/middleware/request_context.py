"""
Request context middleware.

WHAT: Captures per-request context (request ID, client IP, user agent,
requested API version) once, before any security stage runs.

WHY: The IP allow-list, the security monitor, the deprecation headers and
the response reshaper all need the same facts about the request. Deriving
them in one place keeps them consistent (e.g. the IP that was checked
against the firm whitelist is the IP that gets logged).

HOW: Stored on ``request.state.context`` for handlers and in a ContextVar
for code without access to the request.
"""

import ipaddress
import re
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from lexshield.core.config import settings


_VERSION_IN_PATH = re.compile(r"^/api/(v\d+)(?=/|$)", re.IGNORECASE)

VERSION_HEADERS = ("Accept-Version", "API-Version")


@dataclass(frozen=True)
class RequestContext:
    """
    Request-scoped facts shared by middleware and security stages.

    Fields:
    - request_id: Correlation ID, echoed as ``X-Request-ID``
    - ip_address: Client IP (proxy-aware)
    - user_agent: Client identifier, if sent
    - path / method: For log lines
    - api_version: Version the client asked for (``v1``/``v2``)
    """

    request_id: str
    ip_address: str
    user_agent: Optional[str]
    path: str
    method: str
    api_version: str


_request_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "request_context", default=None
)


def get_request_context() -> Optional[RequestContext]:
    """Context of the request being handled, or None outside a request."""
    return _request_context.get()


def is_trusted_proxy(host: Optional[str]) -> bool:
    """Whether ``host`` matches an entry (IP or CIDR) of TRUSTED_PROXIES."""
    if not host or not settings.TRUSTED_PROXIES:
        return False
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    for entry in settings.TRUSTED_PROXIES:
        try:
            if address in ipaddress.ip_network(entry.strip(), strict=False):
                return True
        except ValueError:
            continue
    return False


def get_client_ip(request: Request) -> str:
    """
    Extract the client IP.

    Proxy headers are honoured only when the socket peer is a trusted
    proxy. ``X-Real-IP`` wins; otherwise ``X-Forwarded-For`` is walked from
    the right and the first hop that is not itself a trusted proxy is the
    client. Any other peer is the client, whatever headers it sends.
    """
    peer = request.client.host if request.client and request.client.host else None

    if is_trusted_proxy(peer):
        x_real_ip = request.headers.get("X-Real-IP")
        if x_real_ip:
            return x_real_ip.strip()

        x_forwarded_for = request.headers.get("X-Forwarded-For")
        if x_forwarded_for:
            hops = [hop.strip() for hop in x_forwarded_for.split(",") if hop.strip()]
            for hop in reversed(hops):
                if not is_trusted_proxy(hop):
                    return hop
            if hops:
                return hops[0]

    return peer or "unknown"


def detect_api_version(path: str, headers) -> str:
    """
    Determine the API version requested by the client.

    The path prefix (``/api/v1/...``) wins, then the ``Accept-Version`` or
    ``API-Version`` header, then the configured default. Unsupported values
    fall back to the default.
    """
    match = _VERSION_IN_PATH.match(path or "")
    candidate = match.group(1).lower() if match else None

    if candidate is None:
        for header in VERSION_HEADERS:
            value = headers.get(header)
            if value:
                value = value.strip().lower()
                candidate = value if value.startswith("v") else f"v{value}"
                break

    if candidate in settings.SUPPORTED_API_VERSIONS:
        return candidate
    return settings.DEFAULT_API_VERSION


def request_api_version(request: Request) -> str:
    """API version for a request, preferring the captured context."""
    context = getattr(request.state, "context", None)
    if context is not None:
        return context.api_version
    return detect_api_version(request.url.path, request.headers)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Builds the RequestContext and tags the response with ``X-Request-ID``.

    Must be the outermost application middleware so every other layer
    sees the context.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        context = RequestContext(
            request_id=request_id,
            ip_address=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
            path=request.url.path,
            method=request.method,
            api_version=detect_api_version(request.url.path, request.headers),
        )
        request.state.context = context
        token = _request_context.set(context)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            _request_context.reset(token)
