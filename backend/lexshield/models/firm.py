"""
Firm model.

WHY: A firm is the tenant boundary. Besides identity it carries the
enterprise security settings the firm filter enforces (IP allow-list).
"""

from sqlalchemy import Column, String, JSON, Boolean
from sqlalchemy.orm import relationship

from lexshield.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Firm(Base, PrimaryKeyMixin, TimestampMixin):
    """Law firm (tenant)."""

    __tablename__ = "firms"

    name = Column(String(255), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Enterprise security settings
    # Entries are single IPs, CIDR blocks or "start-end" ranges
    ip_whitelist_enabled = Column(Boolean, nullable=False, default=False)
    ip_whitelist = Column(JSON, nullable=False, default=list)

    users = relationship("User", back_populates="firm", lazy="selectin")
