"""
Interfaces of the external collaborators the security core depends on.

WHAT: Structural protocols for the activity store, the auth-event store,
the identity store and the firm settings store.

WHY: The gates only need a handful of calls from each collaborator.
Typing them as protocols lets production code use Redis/SQLAlchemy while
tests pass in-memory fakes or AsyncMocks.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Tuple


@dataclass(frozen=True)
class UserRecord:
    """
    The identity fields the security stages consume.

    Fields:
    - role: platform role (``lawyer``, ``client``, ``admin``)
    - firm_role: role inside the firm (``owner``, ``admin``, ``lawyer``, ...)
    - permissions: per-module level overrides, e.g. ``{"cases": "edit"}``
    """

    id: int
    role: str
    is_email_verified: bool
    firm_id: Optional[int] = None
    firm_role: Optional[str] = None
    is_active: bool = True
    permissions: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class FirmIPSettings:
    """A firm's IP allow-list configuration."""

    firm_id: int
    enabled: bool = False
    whitelist: Tuple[str, ...] = ()


class KeyValueStore(Protocol):
    """Key-value store with per-key TTL (session activity records)."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...


class AuthEventStore(Protocol):
    """Source of the last successful authentication time per user."""

    async def last_auth_timestamp(self, user_id: int) -> Optional[int]:
        ...


class IdentityStore(Protocol):
    """User lookups; raises UserNotFoundError when the id is unknown."""

    async def find_user(self, user_id: int) -> UserRecord:
        ...


class FirmSettingsStore(Protocol):
    """Firm-level security settings lookups."""

    async def get_ip_settings(self, firm_id: int) -> Optional[FirmIPSettings]:
        ...
