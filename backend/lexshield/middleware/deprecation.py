"""
API deprecation middleware.

WHAT: Announces deprecated API versions and retires removed or relocated
endpoints.

HOW:
- Requests for a deprecated version get ``Deprecation: true``, a ``Sunset``
  HTTP-date, a ``Warning: 299`` line, ``X-API-Deprecated-Version`` and a
  ``Link`` to the same path on the successor version
- Gone endpoints answer 410 ``ENDPOINT_GONE`` (with a replacement hint)
- Moved endpoints answer 301 ``ENDPOINT_MOVED`` with ``Location``

Endpoint tables match on the full path: exact, or as a ``/``-bounded prefix.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from lexshield.core.config import settings
from lexshield.core.exception_handlers import error_response
from lexshield.core.exceptions import EndpointGone, EndpointMoved
from lexshield.middleware.request_context import request_api_version


logger = logging.getLogger(__name__)


_VERSION_SEGMENT = re.compile(r"^/api/v\d+(?=/|$)", re.IGNORECASE)


@dataclass(frozen=True)
class DeprecationPolicy:
    """
    Deprecation rules.

    Fields:
    - deprecated_versions: version -> sunset HTTP-date
    - successor_version: version advertised in ``Link``
    - gone_endpoints: path -> replacement path (or None)
    - moved_endpoints: path -> new path
    """

    deprecated_versions: Mapping[str, str] = field(default_factory=dict)
    successor_version: str = "v2"
    gone_endpoints: Mapping[str, Optional[str]] = field(default_factory=dict)
    moved_endpoints: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls) -> "DeprecationPolicy":
        return cls(
            deprecated_versions=dict(settings.DEPRECATED_API_VERSIONS),
            successor_version=settings.DEFAULT_API_VERSION,
        )


def _match_prefix(path: str, table: Mapping[str, Optional[str]]) -> Optional[Tuple[str, Optional[str]]]:
    candidate = path.rstrip("/") or "/"
    for prefix, target in table.items():
        prefix = prefix.rstrip("/") or "/"
        if candidate == prefix or candidate.startswith(prefix + "/"):
            return prefix, target
    return None


def successor_path(path: str, successor_version: str) -> Optional[str]:
    """Same path on the successor version, when the path is versioned."""
    if not _VERSION_SEGMENT.match(path):
        return None
    return _VERSION_SEGMENT.sub(f"/api/{successor_version}", path, count=1)


def deprecation_headers(version: str, sunset: str, path: str, successor_version: str) -> dict:
    """Headers announcing that ``version`` is deprecated."""
    headers = {
        "Deprecation": "true",
        "Sunset": sunset,
        "Warning": (
            f'299 - "API version {version} is deprecated and will be removed on {sunset}. '
            f'Please migrate to {successor_version}."'
        ),
        "X-API-Deprecated-Version": version,
    }
    successor = successor_path(path, successor_version)
    if successor:
        headers["Link"] = f'<{successor}>; rel="successor-version"'
    return headers


class DeprecationMiddleware(BaseHTTPMiddleware):
    """
    Applies a DeprecationPolicy to every request.

    Example:
        app.add_middleware(
            DeprecationMiddleware,
            policy=DeprecationPolicy(
                deprecated_versions={"v1": "Mon, 01 Jun 2026 00:00:00 GMT"},
                gone_endpoints={"/api/v1/reports/legacy": "/api/v2/reports"},
            ),
        )
    """

    def __init__(self, app, policy: Optional[DeprecationPolicy] = None):
        super().__init__(app)
        self.policy = policy or DeprecationPolicy.from_settings()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path

        gone = _match_prefix(path, self.policy.gone_endpoints)
        if gone is not None:
            prefix, replacement = gone
            logger.info(f"Gone endpoint requested: {path}", extra={"path": path})
            context = {"replacement": replacement} if replacement else {}
            return error_response(EndpointGone(**context))

        moved = _match_prefix(path, self.policy.moved_endpoints)
        if moved is not None:
            prefix, target = moved
            location = target.rstrip("/") + path.rstrip("/")[len(prefix):]
            if request.url.query:
                location = f"{location}?{request.url.query}"
            logger.info(
                f"Moved endpoint requested: {path} -> {location}",
                extra={"path": path, "location": location},
            )
            return error_response(EndpointMoved(location=location))

        response = await call_next(request)

        version = request_api_version(request)
        sunset = self.policy.deprecated_versions.get(version)
        if sunset:
            response.headers.update(
                deprecation_headers(version, sunset, path, self.policy.successor_version)
            )
        return response
