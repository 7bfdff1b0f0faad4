"""
Firm Data Access Object.

WHY: FirmDAO is the firm settings store behind the IP allow-list check.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from lexshield.dao.base import BaseDAO
from lexshield.models.firm import Firm
from lexshield.stores.base import FirmIPSettings


class FirmDAO(BaseDAO[Firm]):
    """Data Access Object for Firm model."""

    def __init__(self, session: AsyncSession):
        super().__init__(Firm, session)

    async def get_ip_settings(self, firm_id: int) -> Optional[FirmIPSettings]:
        """
        Load a firm's IP allow-list.

        Returns:
            FirmIPSettings, or None for unknown firms
        """
        firm = await self.get_by_id(firm_id)
        if firm is None:
            return None
        return FirmIPSettings(
            firm_id=firm.id,
            enabled=bool(firm.ip_whitelist_enabled),
            whitelist=tuple(firm.ip_whitelist or ()),
        )
