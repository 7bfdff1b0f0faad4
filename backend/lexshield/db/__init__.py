"""Database package"""

from lexshield.db.session import AsyncSessionLocal, engine, get_db
from lexshield.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db"]
