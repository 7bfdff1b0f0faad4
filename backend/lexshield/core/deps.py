"""
FastAPI dependency providers for the security collaborators.

WHY: Stages receive their stores and engines through ``Depends`` instead of
importing module-level globals, so tests (and alternative deployments)
swap them with ``app.dependency_overrides``.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lexshield.core.auth import get_redis
from lexshield.dao.case import CaseDAO
from lexshield.dao.firm import FirmDAO
from lexshield.dao.resource import ResourceDAO
from lexshield.dao.user import UserDAO
from lexshield.db.session import get_db
from lexshield.security.email_verification import EmailVerificationGate
from lexshield.security.field_protection import FieldProtector
from lexshield.security.ip_allowlist import IPAllowListService
from lexshield.security.session_policy import SessionPolicyEngine
from lexshield.security.step_up import StepUpAuthGate
from lexshield.stores.base import FirmSettingsStore
from lexshield.stores.redis_store import RedisAuthEventStore, RedisKeyValueStore


_email_verification_gate = EmailVerificationGate()
_field_protector = FieldProtector()


async def get_session_engine() -> SessionPolicyEngine:
    """Session timeout engine over the Redis activity store."""
    return SessionPolicyEngine(RedisKeyValueStore(await get_redis()))


async def get_auth_event_store() -> RedisAuthEventStore:
    """Last-authentication timestamps in Redis."""
    return RedisAuthEventStore(await get_redis())


async def get_step_up_gate(
    store: RedisAuthEventStore = Depends(get_auth_event_store),
) -> StepUpAuthGate:
    """Step-up gate over the auth-event store."""
    return StepUpAuthGate(store)


async def get_identity_store(db: AsyncSession = Depends(get_db)) -> UserDAO:
    """Identity store backed by the users table."""
    return UserDAO(db)


async def get_firm_settings_store(db: AsyncSession = Depends(get_db)) -> FirmDAO:
    """Firm settings store backed by the firms table."""
    return FirmDAO(db)


async def get_resource_dao(db: AsyncSession = Depends(get_db)) -> ResourceDAO:
    """Firm-scoped resource lookups."""
    return ResourceDAO(db)


async def get_case_dao(db: AsyncSession = Depends(get_db)) -> CaseDAO:
    return CaseDAO(db)


async def get_ip_allowlist_service(
    store: FirmSettingsStore = Depends(get_firm_settings_store),
) -> IPAllowListService:
    """IP allow-list evaluation over the firm settings store."""
    return IPAllowListService(store)


async def get_field_protector() -> FieldProtector:
    """Field masking and encryption with the configured Fernet keys."""
    return _field_protector


def get_email_verification_gate() -> EmailVerificationGate:
    """Email verification gate with the default route patterns."""
    return _email_verification_gate
