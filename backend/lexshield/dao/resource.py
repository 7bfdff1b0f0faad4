"""
Firm-scoped resource lookups by model name.

WHAT: Resolves the ``model`` of a resource-access requirement (e.g.
``"Case"``) to a SQLAlchemy model and fetches the row inside the caller's
firm.
"""

from typing import Any, Dict, Optional, Type

from sqlalchemy.ext.asyncio import AsyncSession

from lexshield.dao.base import BaseDAO
from lexshield.models.base import Base
from lexshield.models.case import Case


# Model name used in route configuration -> SQLAlchemy model
RESOURCE_MODELS: Dict[str, Type[Base]] = {
    "Case": Case,
}


def register_resource_model(name: str, model: Type[Base]) -> None:
    """Make a firm-scoped model available to ``resourceAccess`` stages."""
    RESOURCE_MODELS[name] = model


class ResourceDAO:
    """Fetches firm-owned resources by model name."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_firm(self, model_name: str, resource_id: Any, firm_id: int) -> Optional[Base]:
        """
        Fetch a resource only if it belongs to ``firm_id``.

        Unknown model names and non-integer ids return None.
        """
        model = RESOURCE_MODELS.get(model_name)
        if model is None:
            return None
        try:
            pk = int(resource_id)
        except (TypeError, ValueError):
            return None
        return await BaseDAO(model, self.session).get_by_id_and_firm(pk, firm_id)
