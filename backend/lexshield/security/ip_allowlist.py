"""
Firm-level IP allow-listing.

WHAT: Checks a client IP against a firm's whitelist of single addresses,
CIDR blocks and ``start-end`` ranges.

Design decisions:
- Whitelisting disabled -> allow
- Enabled with an empty list -> block everything
- Lookup errors fail open and are logged at ERROR. Locking a whole firm
  out because the settings store hiccupped is treated as worse than a
  briefly unenforced allow-list.
"""

import ipaddress
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from lexshield.stores.base import FirmSettingsStore


logger = logging.getLogger(__name__)


@dataclass
class IPCheckResult:
    allowed: bool
    reason: str


def normalize_ip(ip: Optional[str]) -> Optional[str]:
    """
    Normalize an address for comparison.

    ``::ffff:10.0.0.1`` -> ``10.0.0.1`` and ``::1`` -> ``127.0.0.1``.
    """
    if not ip:
        return ip
    ip = ip.strip()
    if ip.lower().startswith("::ffff:"):
        return ip[7:]
    if ip == "::1":
        return "127.0.0.1"
    return ip


def ip_in_range(ip: str, ip_range: str) -> bool:
    """Check ``ip`` against an inclusive ``start-end`` range."""
    start, _, end = ip_range.partition("-")
    address = ipaddress.ip_address(ip)
    return ipaddress.ip_address(start.strip()) <= address <= ipaddress.ip_address(end.strip())


def ip_in_whitelist(ip: str, whitelist: Iterable[str]) -> bool:
    """
    Test an address against whitelist entries.

    Invalid entries are logged and skipped.
    """
    if not ip:
        return False
    for entry in whitelist:
        entry = entry.strip()
        if entry == ip:
            return True
        try:
            if "/" in entry:
                if ipaddress.ip_address(ip) in ipaddress.ip_network(entry, strict=False):
                    return True
            elif "-" in entry:
                if ip_in_range(ip, entry):
                    return True
        except (ValueError, TypeError):
            logger.error(f"Invalid IP whitelist entry: {entry}")
    return False


class IPAllowListService:
    """
    Evaluates firm IP allow-lists.

    Example:
        service = IPAllowListService(firm_store)
        result = await service.is_ip_allowed("203.0.113.5", firm_id=12)
    """

    def __init__(self, store: FirmSettingsStore):
        self._store = store

    async def is_ip_allowed(self, ip: str, firm_id: int) -> IPCheckResult:
        try:
            settings = await self._store.get_ip_settings(firm_id)
            if settings is None or not settings.enabled:
                return IPCheckResult(True, "ip_whitelist_disabled")

            if not settings.whitelist:
                return IPCheckResult(False, "ip_whitelist_empty")

            if ip_in_whitelist(normalize_ip(ip), settings.whitelist):
                return IPCheckResult(True, "ip_in_whitelist")

            return IPCheckResult(False, "ip_not_in_whitelist")

        except Exception as e:
            # Fail-open
            logger.error(
                f"IP whitelist check failed for firm {firm_id} (allowing request): {e}",
                extra={"firm_id": firm_id, "ip": ip, "error": str(e)},
            )
            return IPCheckResult(True, "ip_check_error")
