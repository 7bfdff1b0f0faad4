"""
Route-level security declaration.

WHAT: ``secure(**options)`` turns a declarative security configuration
into the list of FastAPI dependencies that enforce it.

HOW: ``build_config`` expands the shorthand, ``compose`` orders the stages,
and each stage is mapped to the dependency implementing it. FastAPI runs
route dependencies in list order; a stage blocks by raising.

Example:
    @router.put(
        "/cases/{id}",
        dependencies=secure(permission="cases:edit", model="Case"),
    )
    async def update_case(...): ...
"""

from typing import Any, Callable, Dict, List

from fastapi import Depends

from lexshield.middleware.authenticate import authenticate
from lexshield.middleware.firm import (
    admin_only,
    firm_filter,
    owner_only,
    require_permission,
    require_resource_access,
)
from lexshield.middleware.step_up import require_recent_auth
from lexshield.middleware.webhook import preserve_raw_body, webhook_auth
from lexshield.security.composer import Stage, StageName, build_config, compose


STAGE_DEPENDENCIES: Dict[StageName, Callable[[Any], Callable]] = {
    StageName.PRESERVE_RAW_BODY: lambda _: preserve_raw_body,
    StageName.WEBHOOK_AUTH: webhook_auth,
    StageName.AUTHENTICATE: lambda _: authenticate,
    StageName.FIRM_FILTER: lambda _: firm_filter,
    StageName.OWNER_ONLY: lambda _: owner_only,
    StageName.ADMIN_ONLY: lambda _: admin_only,
    StageName.PERMISSION: require_permission,
    StageName.RESOURCE_ACCESS: require_resource_access,
    StageName.RECENT_AUTH: require_recent_auth,
}


def stage_dependency(stage: Stage) -> Callable:
    """Dependency callable implementing one composed stage."""
    return STAGE_DEPENDENCIES[stage.name](stage.arg)


def secure(**options: Any) -> List[Any]:
    """
    Dependencies enforcing a route's security requirements.

    Accepts the keyword arguments of ``build_config``.
    """
    config = build_config(**options)
    return [Depends(stage_dependency(stage)) for stage in compose(config)]
