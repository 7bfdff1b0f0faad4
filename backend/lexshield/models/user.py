"""
User model.

WHY: Users carry the identity fields the security stages decide on:
platform role, firm membership and firm role, email verification and
per-module permission overrides.
"""

import enum
from sqlalchemy import Column, Integer, String, Enum, ForeignKey, Boolean, JSON
from sqlalchemy.orm import relationship

from lexshield.models.base import Base, TimestampMixin, PrimaryKeyMixin


class UserRole(str, enum.Enum):
    """Platform role."""

    ADMIN = "admin"  # Platform operator
    LAWYER = "lawyer"  # Firm member or solo practitioner
    CLIENT = "client"  # Client portal user


class User(Base, PrimaryKeyMixin, TimestampMixin):
    """Platform user."""

    __tablename__ = "users"

    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)

    role = Column(Enum(UserRole, name="userrole"), nullable=False, default=UserRole.LAWYER)

    # Firm membership; NULL for clients and solo users without a firm
    firm_id = Column(Integer, ForeignKey("firms.id"), nullable=True, index=True)
    # owner, admin, partner, lawyer, paralegal, secretary, accountant, departed
    firm_role = Column(String(50), nullable=True)

    # Module -> level overrides, e.g. {"invoices": "view"}
    permissions = Column(JSON, nullable=False, default=dict)

    is_active = Column(Boolean, default=True, nullable=False)
    is_email_verified = Column(Boolean, default=False, nullable=False)

    firm = relationship("Firm", back_populates="users")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
