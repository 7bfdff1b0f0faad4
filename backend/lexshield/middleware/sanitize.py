"""
Request sanitization middleware.

WHAT: Strips NoSQL operator-injection keys (``$``-prefixed or dotted) from
JSON request bodies and query parameters before routing.

WHY: Written as raw ASGI instead of BaseHTTPMiddleware because the cleaned
body has to be handed downstream; a BaseHTTPMiddleware can read the body
but cannot replace it.

HOW:
- JSON bodies are buffered, cleaned, re-serialised and replayed through a
  wrapped ``receive``; ``content-length`` is rewritten to match
- Query keys are dropped when any bracket segment is prohibited
  (``filter[$gt]=1``)
- Strict mode answers 400 ``SANITIZATION_BLOCKED`` instead of cleaning
- Any internal error forwards the request unsanitized (fail-open, logged)
"""

import json
import logging
import re
from typing import Iterable, List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from lexshield.core.config import settings
from lexshield.core.exception_handlers import error_response
from lexshield.core.exceptions import SanitizationBlocked
from lexshield.security.patterns import normalize_path
from lexshield.security.sanitizer import is_prohibited_key, sanitize


logger = logging.getLogger(__name__)


_BRACKETS = re.compile(r"[\[\]]+")

# Signed payloads must reach verification byte-for-byte
DEFAULT_EXEMPT_PREFIXES = ("/webhooks",)


def _header(scope: Scope, name: bytes) -> Optional[bytes]:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value
    return None


def _is_json(scope: Scope) -> bool:
    content_type = _header(scope, b"content-type") or b""
    return b"json" in content_type.lower()


def is_prohibited_query_key(key: str) -> bool:
    """True when any segment of a (bracketed) query key is prohibited."""
    return any(is_prohibited_key(part) for part in _BRACKETS.split(key) if part)


def sanitize_query_string(query_string: bytes) -> Tuple[bytes, List[str]]:
    """Drop prohibited query parameters; returns the new query and removed keys."""
    pairs = parse_qsl(query_string.decode("latin-1"), keep_blank_values=True)
    kept = [(k, v) for k, v in pairs if not is_prohibited_query_key(k)]
    removed = [f"query.{k}" for k, v in pairs if is_prohibited_query_key(k)]
    if not removed:
        return query_string, []
    return urlencode(kept).encode("latin-1"), removed


async def _read_body(receive: Receive) -> bytes:
    chunks = []
    more_body = True
    while more_body:
        message = await receive()
        if message["type"] != "http.request":
            break
        chunks.append(message.get("body", b""))
        more_body = message.get("more_body", False)
    return b"".join(chunks)


def _replaying_receive(body: bytes, receive: Receive) -> Receive:
    pending: Optional[bytes] = body

    async def replay() -> Message:
        nonlocal pending
        if pending is not None:
            message = {"type": "http.request", "body": pending, "more_body": False}
            pending = None
            return message
        return await receive()

    return replay


class SanitizationMiddleware:
    """
    ASGI middleware removing operator-injection keys from requests.

    Example:
        app.add_middleware(SanitizationMiddleware, strict=True)
    """

    def __init__(
        self,
        app: ASGIApp,
        strict: Optional[bool] = None,
        exempt_prefixes: Iterable[str] = DEFAULT_EXEMPT_PREFIXES,
    ):
        self.app = app
        self.strict = settings.SANITIZE_STRICT_MODE if strict is None else strict
        self.exempt_prefixes = tuple(normalize_path(p) for p in exempt_prefixes)

    def _is_exempt(self, path: str) -> bool:
        normalized = normalize_path(path)
        return any(
            normalized == prefix or normalized.startswith(prefix + "/")
            for prefix in self.exempt_prefixes
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or self._is_exempt(scope.get("path", "")):
            await self.app(scope, receive, send)
            return

        upstream = receive
        body = None
        if _is_json(scope) and scope.get("method") in ("POST", "PUT", "PATCH", "DELETE"):
            body = await _read_body(upstream)
            receive = _replaying_receive(body, upstream)

        try:
            new_scope, new_body, removed = self._sanitize(scope, body)
        except Exception as e:
            # Fail-open
            logger.error(
                f"Request sanitization failed (forwarding unsanitized): {e}",
                extra={"path": scope.get("path"), "error": str(e)},
            )
            await self.app(scope, receive, send)
            return

        if not removed:
            await self.app(scope, receive, send)
            return

        logger.warning(
            f"Prohibited keys in request to {scope.get('path')}: {removed}",
            extra={"path": scope.get("path"), "removed": removed, "strict": self.strict},
        )

        if self.strict:
            response = error_response(SanitizationBlocked())
            await response(scope, receive, send)
            return

        if new_body is not None and new_body != body:
            receive = _replaying_receive(new_body, upstream)
        await self.app(new_scope, receive, send)

    def _sanitize(self, scope: Scope, body: Optional[bytes]) -> Tuple[Scope, Optional[bytes], List[str]]:
        removed: List[str] = []
        new_scope = scope

        query_string, query_removed = sanitize_query_string(scope.get("query_string", b""))
        if query_removed:
            removed.extend(query_removed)
            new_scope = dict(scope)
            new_scope["query_string"] = query_string

        new_body = body
        if body:
            try:
                data = json.loads(body)
            except ValueError:
                # Malformed JSON is left to request validation
                data = None
            if data is not None:
                result = sanitize(data, "body")
                if result.modified:
                    removed.extend(result.removed)
                    new_body = json.dumps(result.value).encode("utf-8")
                    new_scope = dict(new_scope)
                    new_scope["headers"] = [
                        (k, v) for k, v in scope.get("headers", []) if k.lower() != b"content-length"
                    ] + [(b"content-length", str(len(new_body)).encode("latin-1"))]

        return new_scope, new_body, removed
