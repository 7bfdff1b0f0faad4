"""
NoSQL operator-injection sanitization.

WHAT: Removes keys that start with ``$`` or contain ``.`` from nested
request data, e.g. ``{"email": {"$ne": null}}`` -> ``{"email": {}}``.
"""

from dataclasses import dataclass, field
from typing import Any, List


def is_prohibited_key(key: Any) -> bool:
    return isinstance(key, str) and (key.startswith("$") or "." in key)


@dataclass
class SanitizeResult:
    value: Any
    removed: List[str] = field(default_factory=list)

    @property
    def modified(self) -> bool:
        return bool(self.removed)


def sanitize(value: Any, path: str = "") -> SanitizeResult:
    """
    Strip prohibited keys recursively.

    Args:
        value: Decoded JSON value
        path: Dotted location prefix used for reporting

    Returns:
        SanitizeResult with the cleaned value and removed key paths
    """
    removed: List[str] = []

    def _walk(node: Any, prefix: str) -> Any:
        if isinstance(node, dict):
            cleaned = {}
            for key, item in node.items():
                location = f"{prefix}.{key}" if prefix else str(key)
                if is_prohibited_key(key):
                    removed.append(location)
                    continue
                cleaned[key] = _walk(item, location)
            return cleaned
        if isinstance(node, list):
            return [_walk(item, f"{prefix}[{i}]") for i, item in enumerate(node)]
        return node

    return SanitizeResult(value=_walk(value, path), removed=removed)
