"""
Case Data Access Object.

Every query is scoped to a firm.
"""

from typing import List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from lexshield.dao.base import BaseDAO
from lexshield.models.case import Case


class CaseDAO(BaseDAO[Case]):
    """Data Access Object for Case model."""

    def __init__(self, session: AsyncSession):
        super().__init__(Case, session)

    async def list_for_firm(self, firm_id: int, offset: int = 0, limit: int = 20) -> Tuple[List[Case], int]:
        """
        One page of a firm's cases plus the firm's total case count.
        """
        cases = await self.get_all(skip=offset, limit=limit, firm_id=firm_id)
        total = await self.count(firm_id=firm_id)
        return cases, total
