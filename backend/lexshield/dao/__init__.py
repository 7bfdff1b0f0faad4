"""
Data Access Object (DAO) package.

WHY: DAOs implement the identity, firm settings and resource lookups the
security stages consume through store protocols.
"""

from lexshield.dao.base import BaseDAO
from lexshield.dao.user import UserDAO
from lexshield.dao.firm import FirmDAO
from lexshield.dao.case import CaseDAO
from lexshield.dao.resource import ResourceDAO, RESOURCE_MODELS, register_resource_model

__all__ = [
    "BaseDAO",
    "UserDAO",
    "FirmDAO",
    "CaseDAO",
    "ResourceDAO",
    "RESOURCE_MODELS",
    "register_resource_model",
]
