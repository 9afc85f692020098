"""
Static authorization tables.

ROLE_PERMISSIONS is the Permission Table: each role's permissions are listed
explicitly. Nothing is inherited between roles; OWNER being a superset of
ADMIN is a fact of the data below and must be kept that way by hand.

ENDPOINT_REQUIREMENTS declares, per service action, the permission it needs
and (optionally) the only roles allowed to call it. Services check it before
asking the access decision engine about a specific resource.
"""

from dataclasses import dataclass
from typing import Any, Mapping

from orgtasks.models.permission import Permission
from orgtasks.models.role import Role

ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.OWNER: frozenset(
        {
            Permission.TASK_CREATE,
            Permission.TASK_READ,
            Permission.TASK_UPDATE,
            Permission.TASK_DELETE,
            Permission.USER_CREATE,
            Permission.USER_READ,
            Permission.USER_UPDATE,
            Permission.USER_DELETE,
            Permission.ORG_READ,
            Permission.ORG_UPDATE,
            Permission.ORG_DELETE,
            Permission.AUDIT_READ,
        }
    ),
    Role.ADMIN: frozenset(
        {
            Permission.TASK_CREATE,
            Permission.TASK_READ,
            Permission.TASK_UPDATE,
            Permission.TASK_DELETE,
            Permission.USER_READ,
            Permission.USER_UPDATE,
            Permission.ORG_READ,
            Permission.AUDIT_READ,
        }
    ),
    Role.VIEWER: frozenset(
        {
            Permission.TASK_READ,
            Permission.USER_READ,
            Permission.ORG_READ,
        }
    ),
}


def has_permission(
    role: Role | str,
    permission: Permission,
    table: Mapping[Any, frozenset[Permission]] = ROLE_PERMISSIONS,
) -> bool:
    """
    Check whether a role holds a permission in table.

    Unknown roles hold nothing.
    """
    return permission in table.get(role, frozenset())


@dataclass(frozen=True)
class EndpointRequirement:
    """Permission (and optional role restriction) required to call a service action."""

    permission: Permission
    roles: frozenset[Role] | None = None


ENDPOINT_REQUIREMENTS: dict[str, EndpointRequirement] = {
    "tasks:create": EndpointRequirement(Permission.TASK_CREATE),
    "tasks:list": EndpointRequirement(Permission.TASK_READ),
    "tasks:read": EndpointRequirement(Permission.TASK_READ),
    "tasks:update": EndpointRequirement(Permission.TASK_UPDATE),
    "tasks:delete": EndpointRequirement(Permission.TASK_DELETE),
    "orgs:list": EndpointRequirement(Permission.ORG_READ),
    "orgs:read": EndpointRequirement(Permission.ORG_READ),
    "orgs:create": EndpointRequirement(Permission.ORG_UPDATE),
    "orgs:update": EndpointRequirement(Permission.ORG_UPDATE),
    "orgs:delete": EndpointRequirement(Permission.ORG_DELETE),
    "audit:list": EndpointRequirement(
        Permission.AUDIT_READ, roles=frozenset({Role.OWNER, Role.ADMIN})
    ),
}
