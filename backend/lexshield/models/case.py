"""
Case model.

Firm-owned resource used by resource ownership checks.
"""

from sqlalchemy import Column, Integer, String, ForeignKey

from lexshield.models.base import Base, TimestampMixin, PrimaryKeyMixin, FirmScopedMixin


class Case(Base, PrimaryKeyMixin, TimestampMixin, FirmScopedMixin):
    """Legal case."""

    __tablename__ = "cases"

    title = Column(String(500), nullable=False)
    case_number = Column(String(100), nullable=True, index=True)
    lawyer_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    # Fernet ciphertext, see FieldProtector
    client_national_id = Column(String(500), nullable=True)
