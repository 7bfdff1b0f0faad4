"""
Security stack composition.

WHAT: Turns a declarative per-route security configuration into an ordered
list of security stages.

WHY: Route modules should say *what* protection they need
(``secure(permission="cases:edit", model="Case")``) and never hand-order
authentication, firm scoping and permission checks themselves. Keeping the
ordering in one pure function makes it testable for every combination.

HOW: ``compose`` is pure (no I/O, no randomness):
1. Webhook routes: ``[preserveRawBody, webhookAuth(provider)]`` and nothing
   else; webhook calls never carry a user identity
2. Public routes (``auth=False``): ``[]``
3. Otherwise, in fixed order: authenticate, firmFilter, ownerOnly or
   adminOnly, permission, resourceAccess, recentAuth
"""

import enum
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Union


class StageName(str, enum.Enum):
    """Identifiers of the security stages."""

    PRESERVE_RAW_BODY = "preserveRawBody"
    WEBHOOK_AUTH = "webhookAuth"
    AUTHENTICATE = "authenticate"
    FIRM_FILTER = "firmFilter"
    OWNER_ONLY = "ownerOnly"
    ADMIN_ONLY = "adminOnly"
    PERMISSION = "permission"
    RESOURCE_ACCESS = "resourceAccess"
    RECENT_AUTH = "recentAuth"


@dataclass(frozen=True)
class PermissionRequirement:
    """Module permission needed by a route, e.g. ``cases`` at ``edit``."""

    module: str
    level: str = "view"


@dataclass(frozen=True)
class ResourceAccess:
    """Ownership check of the resource named by a path parameter."""

    model: str
    param: str = "id"


@dataclass(frozen=True)
class Stage:
    """
    One step of a composed security stack.

    ``arg`` carries the stage parameter: the webhook provider, the
    PermissionRequirement, the ResourceAccess, or the max age in minutes.
    """

    name: StageName
    arg: Any = None


@dataclass(frozen=True)
class SecurityConfig:
    """
    Declarative security requirements of one route.

    Constructed once at route registration. ``webhook_auth`` overrides every
    other field; ``owner_only`` is checked before ``admin_only``.
    """

    auth: bool = True
    firm_filter: bool = True
    owner_only: bool = False
    admin_only: bool = False
    permission: Optional[PermissionRequirement] = None
    resource_access: Optional[ResourceAccess] = None
    webhook_auth: Optional[str] = None
    recent_auth_minutes: Optional[int] = None


PermissionSpec = Union[str, Mapping[str, str], PermissionRequirement, None]
ResourceSpec = Union[str, Mapping[str, str], ResourceAccess, None]


def parse_permission(spec: PermissionSpec) -> Optional[PermissionRequirement]:
    """
    Expand the permission shorthand.

    ``"cases:edit"`` -> ``PermissionRequirement("cases", "edit")``;
    a bare ``"cases"`` means view access.
    """
    if spec is None or spec == "":
        return None
    if isinstance(spec, PermissionRequirement):
        return spec
    if isinstance(spec, str):
        module, _, level = spec.partition(":")
        return PermissionRequirement(module=module.strip(), level=(level.strip() or "view"))
    return PermissionRequirement(
        module=str(spec.get("module", "")),
        level=str(spec.get("level") or "view"),
    )


def parse_resource_access(
    spec: ResourceSpec,
    model: Optional[str] = None,
) -> Optional[ResourceAccess]:
    """
    Expand the resource-access shorthand.

    An explicit ``resource_access`` wins; otherwise a bare ``model`` name
    expands to ``ResourceAccess(model, "id")``.
    """
    if isinstance(spec, ResourceAccess):
        return spec
    if isinstance(spec, str) and spec:
        return ResourceAccess(model=spec)
    if isinstance(spec, Mapping) and spec.get("model"):
        return ResourceAccess(model=spec["model"], param=spec.get("param") or "id")
    if model:
        return ResourceAccess(model=model)
    return None


def build_config(
    auth: bool = True,
    firm_filter: bool = True,
    owner_only: bool = False,
    admin_only: bool = False,
    permission: PermissionSpec = None,
    resource_access: ResourceSpec = None,
    model: Optional[str] = None,
    webhook_auth: Optional[str] = None,
    recent_auth_minutes: Optional[int] = None,
) -> SecurityConfig:
    """Build a SecurityConfig, applying shorthand expansion."""
    return SecurityConfig(
        auth=auth,
        firm_filter=firm_filter,
        owner_only=owner_only,
        admin_only=admin_only,
        permission=parse_permission(permission),
        resource_access=parse_resource_access(resource_access, model),
        webhook_auth=webhook_auth or None,
        recent_auth_minutes=recent_auth_minutes,
    )


def compose(config: SecurityConfig) -> List[Stage]:
    """
    Build the ordered stage list for a security configuration.

    Args:
        config: Route security requirements

    Returns:
        Stages in execution order
    """
    if config.webhook_auth:
        return [
            Stage(StageName.PRESERVE_RAW_BODY),
            Stage(StageName.WEBHOOK_AUTH, config.webhook_auth),
        ]

    if config.auth is False:
        return []

    stages = [Stage(StageName.AUTHENTICATE)]

    if config.firm_filter:
        stages.append(Stage(StageName.FIRM_FILTER))

    if config.owner_only:
        stages.append(Stage(StageName.OWNER_ONLY))
    elif config.admin_only:
        stages.append(Stage(StageName.ADMIN_ONLY))

    if config.permission is not None:
        stages.append(Stage(StageName.PERMISSION, config.permission))

    if config.resource_access is not None:
        stages.append(Stage(StageName.RESOURCE_ACCESS, config.resource_access))

    if config.recent_auth_minutes:
        stages.append(Stage(StageName.RECENT_AUTH, config.recent_auth_minutes))

    return stages
