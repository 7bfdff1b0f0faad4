"""
Database models package.
"""

from lexshield.models.base import Base, TimestampMixin, PrimaryKeyMixin, FirmScopedMixin
from lexshield.models.firm import Firm
from lexshield.models.user import User, UserRole
from lexshield.models.case import Case

__all__ = [
    "Base",
    "TimestampMixin",
    "PrimaryKeyMixin",
    "FirmScopedMixin",
    "Firm",
    "User",
    "UserRole",
    "Case",
]
