"""
Firm-scoped authorization stages.

WHAT: The ``firmFilter``, ``ownerOnly``, ``adminOnly``, ``permission`` and
``resourceAccess`` security stages.

WHY: Multi-tenancy is enforced here, before any handler runs. Every
firm-scoped query in a handler can then trust ``request.state.firm_id``.

HOW: Each stage reads the user set by ``authenticate`` from
``request.state`` and raises an AppException subclass to block. The
parametrised stages are dependency factories closed over their argument.
"""

import logging
from typing import Callable

from fastapi import Depends, Request

from lexshield.core.deps import get_ip_allowlist_service, get_resource_dao
from lexshield.core.exceptions import (
    AdminOnlyError,
    AuthRequired,
    FirmAccessRequired,
    IPNotWhitelisted,
    OwnerOnlyError,
    PermissionDenied,
    ResourceNotFoundError,
)
from lexshield.dao.resource import ResourceDAO
from lexshield.middleware.request_context import get_client_ip
from lexshield.security.composer import PermissionRequirement, ResourceAccess
from lexshield.security.ip_allowlist import IPAllowListService
from lexshield.security.permissions import ADMIN_ROLES, FIRM_OWNER, has_permission
from lexshield.stores.base import UserRecord


logger = logging.getLogger(__name__)


def current_user(request: Request) -> UserRecord:
    """
    User resolved by the authenticate stage.

    Raises:
        AuthRequired: A stage was composed without authenticate before it
    """
    user = getattr(request.state, "user", None)
    if user is None:
        raise AuthRequired()
    return user


def _client_ip(request: Request) -> str:
    context = getattr(request.state, "context", None)
    return context.ip_address if context is not None else get_client_ip(request)


async def firm_filter(
    request: Request,
    ip_service: IPAllowListService = Depends(get_ip_allowlist_service),
) -> int:
    """
    Require firm membership and apply the firm's IP allow-list.

    Returns:
        The firm ID (also stored on ``request.state.firm_id``)
    """
    user = current_user(request)
    if user.firm_id is None:
        logger.warning(
            f"User {user.id} without firm blocked from {request.url.path}",
            extra={"user_id": user.id, "path": request.url.path},
        )
        raise FirmAccessRequired()

    ip = _client_ip(request)
    result = await ip_service.is_ip_allowed(ip, user.firm_id)
    if not result.allowed:
        logger.warning(
            f"IP {ip} blocked for firm {user.firm_id}: {result.reason}",
            extra={"user_id": user.id, "firm_id": user.firm_id, "ip": ip, "reason": result.reason},
        )
        raise IPNotWhitelisted(reason=result.reason)

    request.state.firm_id = user.firm_id
    return user.firm_id


async def owner_only(request: Request) -> None:
    user = current_user(request)
    if user.firm_role != FIRM_OWNER:
        logger.warning(
            f"Non-owner {user.id} blocked from {request.url.path}",
            extra={"user_id": user.id, "firm_role": user.firm_role},
        )
        raise OwnerOnlyError()


async def admin_only(request: Request) -> None:
    user = current_user(request)
    if user.firm_role not in ADMIN_ROLES:
        logger.warning(
            f"Non-admin {user.id} blocked from {request.url.path}",
            extra={"user_id": user.id, "firm_role": user.firm_role},
        )
        raise AdminOnlyError()


def require_permission(requirement: PermissionRequirement) -> Callable:
    """
    Build the ``permission`` stage for a module/level requirement.

    Example:
        @router.put("/cases/{id}", dependencies=[Depends(require_permission(
            PermissionRequirement("cases", "edit")))])
    """

    async def check_permission(request: Request) -> None:
        user = current_user(request)
        if not has_permission(user, requirement.module, requirement.level):
            logger.warning(
                f"User {user.id} lacks {requirement.module}:{requirement.level}",
                extra={
                    "user_id": user.id,
                    "permission_module": requirement.module,
                    "level": requirement.level,
                },
            )
            raise PermissionDenied(module=requirement.module, requiredLevel=requirement.level)

    return check_permission


def require_resource_access(access: ResourceAccess) -> Callable:
    """
    Build the ``resourceAccess`` stage.

    The resource named by ``access.param`` must exist and belong to the
    caller's firm. Both failures answer 404 so other firms' IDs cannot be
    probed.
    """

    async def check_resource_access(
        request: Request,
        resource_dao: ResourceDAO = Depends(get_resource_dao),
    ):
        user = current_user(request)
        firm_id = getattr(request.state, "firm_id", None) or user.firm_id
        resource_id = request.path_params.get(access.param)

        resource = None
        if firm_id is not None and resource_id is not None:
            resource = await resource_dao.get_for_firm(access.model, resource_id, firm_id)

        if resource is None:
            logger.warning(
                f"{access.model} {resource_id} not visible to firm {firm_id}",
                extra={"user_id": user.id, "model": access.model, "resource_id": resource_id},
            )
            raise ResourceNotFoundError(message=f"{access.model} not found")

        request.state.resource = resource
        return resource

    return check_resource_access
