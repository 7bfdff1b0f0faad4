"""
Response payload reshaping between API versions.

WHAT: Converts a response payload from one API version's shape to
another's.

WHY: v1 clients still exist while handlers are written against v2. The
conversion lives in one place instead of in every handler.

HOW: Concerns applied in sequence:
1. Error envelopes: v1 ``{error: true, message, code}`` <->
   v2 ``{success: false, error: {message, code, details?}}``. A payload in
   an error shape is converted and returned without further steps.
2. Field renaming from an alias table (v2 name -> v1 name)
3. Date fields: v2 ISO-8601 strings <-> v1 epoch-millisecond integers
4. Pagination: v2 cursor ``{cursor, limit, hasMore, total}`` <->
   v1 offset ``{page, limit, total, pages}``

Any exception returns the original payload untouched.
"""

import base64
import binascii
import copy
import json
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional


logger = logging.getLogger(__name__)


V1 = "v1"
V2 = "v2"

DEFAULT_DATE_FIELDS = frozenset(
    {
        "createdAt",
        "updatedAt",
        "deletedAt",
        "dueDate",
        "startDate",
        "endDate",
        "hearingDate",
        "issuedAt",
        "paidAt",
    }
)


# ============================================================================
# Cursor helpers
# ============================================================================


def encode_cursor(offset: int) -> Optional[str]:
    """Encode an offset as a cursor; page one has no cursor."""
    if offset <= 0:
        return None
    raw = json.dumps({"offset": offset}, separators=(",", ":")).encode()
    return base64.b64encode(raw).decode()


def decode_cursor(cursor: Optional[str]) -> int:
    """
    Decode a cursor to its offset.

    Missing or unreadable cursors decode to offset 0.
    """
    if not cursor:
        return 0
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        data = json.loads(base64.b64decode(padded).decode())
        return max(int(data.get("offset", 0)), 0)
    except (binascii.Error, ValueError, TypeError, AttributeError):
        logger.debug(f"Unreadable pagination cursor: {cursor!r}")
        return 0


def cursor_to_page(pagination: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert v2 cursor pagination to v1 page pagination."""
    limit = int(pagination.get("limit") or 0)
    total = pagination.get("total")
    offset = decode_cursor(pagination.get("cursor"))

    page = (offset // limit) + 1 if limit > 0 and offset > 0 else 1
    pages = math.ceil(total / limit) if limit > 0 and total is not None else 0

    return {"page": page, "limit": limit, "total": total, "pages": pages}


def page_to_cursor(pagination: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert v1 page pagination to v2 cursor pagination."""
    page = max(int(pagination.get("page") or 1), 1)
    limit = int(pagination.get("limit") or 0)
    total = pagination.get("total")
    offset = (page - 1) * limit

    has_more = total is not None and offset + limit < total

    return {
        "cursor": encode_cursor(offset),
        "limit": limit,
        "hasMore": has_more,
        "total": total,
    }


# ============================================================================
# Error envelopes
# ============================================================================


def is_v1_error(payload: Any) -> bool:
    return isinstance(payload, dict) and payload.get("error") is True and "message" in payload


def is_v2_error(payload: Any) -> bool:
    return (
        isinstance(payload, dict)
        and payload.get("success") is False
        and isinstance(payload.get("error"), dict)
    )


def error_to_v2(payload: Mapping[str, Any]) -> Dict[str, Any]:
    error: Dict[str, Any] = {"message": payload.get("message"), "code": payload.get("code")}
    if payload.get("messageAr") is not None:
        error["messageAr"] = payload["messageAr"]
    if payload.get("details") is not None:
        error["details"] = payload["details"]
    return {"success": False, "error": error}


def error_to_v1(payload: Mapping[str, Any]) -> Dict[str, Any]:
    error = payload["error"]
    result: Dict[str, Any] = {
        "error": True,
        "message": error.get("message"),
        "code": error.get("code"),
    }
    if error.get("messageAr") is not None:
        result["messageAr"] = error["messageAr"]
    if error.get("details") is not None:
        result["details"] = error["details"]
    return result


# ============================================================================
# Dates
# ============================================================================


def iso_to_millis(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def millis_to_iso(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ============================================================================
# Engine
# ============================================================================


class ResponseReshapeEngine:
    """
    Pure payload transform between API versions.

    Example:
        engine = ResponseReshapeEngine(field_aliases={"firmId": "firm_id"})
        v1_body = engine.transform(v2_body, "v2", "v1")
    """

    def __init__(
        self,
        field_aliases: Optional[Mapping[str, str]] = None,
        date_fields: Iterable[str] = DEFAULT_DATE_FIELDS,
        pagination_key: str = "pagination",
    ):
        """
        Args:
            field_aliases: v2 field name -> v1 field name
            date_fields: Field names (either version) holding dates
            pagination_key: Key holding the pagination object
        """
        self._to_v1 = dict(field_aliases or {})
        self._to_v2 = {v1: v2 for v2, v1 in self._to_v1.items()}
        names = set(date_fields)
        names |= {self._to_v1[n] for n in list(names) if n in self._to_v1}
        names |= {self._to_v2[n] for n in list(names) if n in self._to_v2}
        self._date_fields = frozenset(names)
        self._pagination_key = pagination_key

    def transform(self, payload: Any, from_version: str, to_version: str) -> Any:
        """
        Reshape a payload from one API version to another.

        Args:
            payload: JSON-compatible response body
            from_version: Version the payload was produced in
            to_version: Version the client asked for

        Returns:
            The reshaped payload, or the original one if anything fails
        """
        if from_version == to_version or payload is None:
            return payload

        try:
            if is_v1_error(payload) or is_v2_error(payload):
                return self.normalize_error(payload, to_version)

            result = copy.deepcopy(payload)
            result = self._rename(result, to_version)
            result = self._reformat_dates(result, to_version)
            return self._convert_pagination(result, to_version)

        except Exception as e:
            logger.warning(
                f"Response reshape failed ({from_version}->{to_version}), returning original: {e}",
                extra={"from_version": from_version, "to_version": to_version},
            )
            return payload

    def normalize_error(self, payload: Any, to_version: str) -> Any:
        """Convert an error envelope to the target version's shape."""
        if to_version == V2 and is_v1_error(payload):
            return error_to_v2(payload)
        if to_version == V1 and is_v2_error(payload):
            return error_to_v1(payload)
        return payload

    def _rename(self, node: Any, to_version: str) -> Any:
        table = self._to_v1 if to_version == V1 else self._to_v2
        if not table:
            return node
        if isinstance(node, list):
            return [self._rename(item, to_version) for item in node]
        if isinstance(node, dict):
            return {table.get(k, k): self._rename(v, to_version) for k, v in node.items()}
        return node

    def _reformat_dates(self, node: Any, to_version: str) -> Any:
        convert = iso_to_millis if to_version == V1 else millis_to_iso
        if isinstance(node, list):
            return [self._reformat_dates(item, to_version) for item in node]
        if isinstance(node, dict):
            return {
                k: convert(v) if k in self._date_fields else self._reformat_dates(v, to_version)
                for k, v in node.items()
            }
        return node

    def _convert_pagination(self, payload: Any, to_version: str) -> Any:
        if not isinstance(payload, dict):
            return payload
        pagination = payload.get(self._pagination_key)
        if not isinstance(pagination, dict):
            return payload

        if to_version == V1 and "page" not in pagination:
            payload[self._pagination_key] = cursor_to_page(pagination)
        elif to_version == V2 and "page" in pagination:
            payload[self._pagination_key] = page_to_cursor(pagination)
        return payload
