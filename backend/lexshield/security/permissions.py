"""
Module permission levels for firm members.

Levels are ordered ``none < view < edit < full``. A member's effective
level for a module is their per-module override if present, else the
default of their firm role.
"""

from typing import Dict, Optional

from lexshield.stores.base import UserRecord


PERMISSION_LEVELS = ("none", "view", "edit", "full")

FIRM_OWNER = "owner"
FIRM_ADMIN = "admin"
ADMIN_ROLES = frozenset({FIRM_OWNER, FIRM_ADMIN})

# Firm role -> module -> level; "*" is the role-wide default
ROLE_PERMISSIONS: Dict[str, Dict[str, str]] = {
    "owner": {"*": "full"},
    "admin": {"*": "full"},
    "partner": {"*": "edit", "reports": "full", "cases": "full"},
    "lawyer": {"*": "view", "cases": "edit", "clients": "edit", "documents": "edit", "tasks": "edit"},
    "paralegal": {"*": "view", "documents": "edit", "tasks": "edit"},
    "secretary": {"*": "view", "appointments": "edit", "clients": "edit"},
    "accountant": {"*": "none", "invoices": "full", "payments": "full", "reports": "view"},
    "departed": {"*": "none"},
}


def level_rank(level: Optional[str]) -> int:
    """
    Rank of a level; unknown levels rank as ``none``.
    """
    try:
        return PERMISSION_LEVELS.index((level or "none").lower())
    except ValueError:
        return 0


def required_rank(level: Optional[str]) -> int:
    """
    Rank of a required level; unknown requirements rank as ``full``.
    """
    try:
        return PERMISSION_LEVELS.index((level or "view").lower())
    except ValueError:
        return len(PERMISSION_LEVELS) - 1


def effective_level(user: UserRecord, module: str) -> str:
    """Resolve the user's permission level for ``module``."""
    if module in user.permissions:
        return user.permissions[module]
    defaults = ROLE_PERMISSIONS.get(user.firm_role or "", {})
    return defaults.get(module, defaults.get("*", "none"))


def has_permission(user: UserRecord, module: str, level: str) -> bool:
    return level_rank(effective_level(user, module)) >= required_rank(level)
