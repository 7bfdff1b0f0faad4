"""
User Data Access Object.

WHY: UserDAO is the identity store behind the authenticate stage.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from lexshield.dao.base import BaseDAO
from lexshield.models.user import User
from lexshield.core.exceptions import UserNotFoundError
from lexshield.stores.base import UserRecord


class UserDAO(BaseDAO[User]):
    """Data Access Object for User model."""

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def find_user(self, user_id: int) -> UserRecord:
        """
        Load the identity fields of a user.

        Args:
            user_id: User primary key

        Returns:
            UserRecord snapshot

        Raises:
            UserNotFoundError: If no user has this id
        """
        user = await self.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id=user_id)

        return UserRecord(
            id=user.id,
            role=user.role.value if user.role is not None else "",
            is_email_verified=bool(user.is_email_verified),
            firm_id=user.firm_id,
            firm_role=user.firm_role,
            is_active=bool(user.is_active),
            permissions=dict(user.permissions or {}),
        )
