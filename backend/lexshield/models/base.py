"""
Base model class for all SQLAlchemy models.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for the identity and firm tables."""

    pass


class TimestampMixin:
    """Adds created_at and updated_at columns."""

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class PrimaryKeyMixin:
    """Adds an auto-incrementing integer primary key."""

    id = Column(Integer, primary_key=True, index=True)


class FirmScopedMixin:
    """
    Adds the tenant column.

    WHY: Resource ownership checks compare ``firm_id`` on the row with the
    caller's firm; every firm-owned model must carry it.
    """

    firm_id = Column(Integer, nullable=False, index=True)
