"""
Route pattern classification.

WHAT: Classifies a request path against three ordered sets of route
prefixes: always-required, exempt and required.

WHY: Gates such as email verification need a declarative way to say
"these routes are exempt, except these sub-routes which are always gated".
Precedence is fixed: always-required > exempt > required > default allow.

HOW: Paths are normalized (API version prefix stripped, trailing slash
stripped, lowercased) and tested against each tier in order. A pattern
matches when the path equals it, starts with ``pattern + "/"``, or starts
with ``pattern`` at all.

Known edge case: the last rule is a bare prefix match, so ``/team`` also
matches ``/teamwork``. Some pattern lists depend on this, so it is kept.
"""

import enum
import re
from dataclasses import dataclass
from typing import Iterable, Tuple


_VERSION_PREFIX = re.compile(r"^/api/v[12](?=/|$)", re.IGNORECASE)


class RouteTier(str, enum.Enum):
    """Classification result for a request path."""

    ALWAYS_REQUIRED = "always_required"
    EXEMPT = "exempt"
    REQUIRED = "required"
    DEFAULT_ALLOW = "default_allow"


def normalize_path(path: str) -> str:
    """
    Normalize a request path for pattern matching.

    Args:
        path: Raw request path, e.g. ``/api/v1/Cases/``

    Returns:
        Normalized path, e.g. ``/cases``
    """
    normalized = _VERSION_PREFIX.sub("", path or "")
    if len(normalized) > 1 and normalized.endswith("/"):
        normalized = normalized.rstrip("/") or "/"
    if not normalized:
        normalized = "/"
    return normalized.lower()


def matches_pattern(normalized_path: str, pattern: str) -> bool:
    """
    Test a normalized path against one pattern.

    Args:
        normalized_path: Output of ``normalize_path``
        pattern: Lowercase route prefix

    Returns:
        True if the path is covered by the pattern
    """
    if not pattern:
        return False
    return (
        normalized_path == pattern
        or normalized_path.startswith(pattern + "/")
        or normalized_path.startswith(pattern)
    )


def _normalize_patterns(patterns: Iterable[str]) -> Tuple[str, ...]:
    result = []
    for pattern in patterns:
        cleaned = pattern.strip().lower()
        if len(cleaned) > 1:
            cleaned = cleaned.rstrip("/")
        if cleaned:
            result.append(cleaned)
    return tuple(result)


@dataclass(frozen=True)
class RoutePatternSet:
    """
    Three ordered tiers of route prefixes.

    Immutable; build one at startup and inject it into the gate that uses it.
    """

    always_required: Tuple[str, ...] = ()
    exempt: Tuple[str, ...] = ()
    required: Tuple[str, ...] = ()

    @classmethod
    def from_iterables(
        cls,
        always_required: Iterable[str] = (),
        exempt: Iterable[str] = (),
        required: Iterable[str] = (),
    ) -> "RoutePatternSet":
        """Build a pattern set, lowercasing and trimming trailing slashes."""
        return cls(
            always_required=_normalize_patterns(always_required),
            exempt=_normalize_patterns(exempt),
            required=_normalize_patterns(required),
        )

    def tiers(self) -> Tuple[Tuple[RouteTier, Tuple[str, ...]], ...]:
        """Tiers in precedence order."""
        return (
            (RouteTier.ALWAYS_REQUIRED, self.always_required),
            (RouteTier.EXEMPT, self.exempt),
            (RouteTier.REQUIRED, self.required),
        )


def classify(path: str, sets: RoutePatternSet) -> RouteTier:
    """
    Classify a request path.

    Total over string input: malformed patterns never match and the
    function never raises.

    Args:
        path: Raw request path
        sets: Pattern tiers to test against

    Returns:
        The first tier with a matching pattern, else DEFAULT_ALLOW
    """
    normalized = normalize_path(path)
    for tier, patterns in sets.tiers():
        for pattern in patterns:
            if matches_pattern(normalized, pattern):
                return tier
    return RouteTier.DEFAULT_ALLOW
