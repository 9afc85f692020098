"""
Access decision engine.

authorize() combines the checks below in a fixed order and stops at the
first failure:

1. authentication: a principal must be present and active
2. role validity: the role must have an entry in the permission table
3. permission: the role must hold the permission the operation requires
4. scope: the resource's organization must be within the role's reach
   (global for OWNER, own organization and descendants for ADMIN, own
   organization only for VIEWER)
5. ownership: for update/delete, roles limited to their own organization
   must also have created the resource

Denials are returned, never raised. Only storage faults during a hierarchy
lookup propagate to the caller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from orgtasks.core.permissions import (
    ENDPOINT_REQUIREMENTS,
    ROLE_PERMISSIONS,
    has_permission,
    EndpointRequirement,
)
from orgtasks.models.permission import Permission
from orgtasks.models.principal import Principal
from orgtasks.models.role import Role
from orgtasks.services.organization_directory import OrganizationDirectory


class Operation(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class ResourceKind(str, Enum):
    TASK = "task"
    ORGANIZATION = "organization"


class DenialKind(str, Enum):
    """Internal reason category. Logged and audited, never shown to clients."""

    NOT_AUTHENTICATED = "not_authenticated"
    INVALID_ROLE = "invalid_role"
    PERMISSION_DENIED = "permission_denied"
    SCOPE_DENIED = "scope_denied"
    OWNERSHIP_DENIED = "ownership_denied"


class ScopeRule(str, Enum):
    GLOBAL = "global"
    HIERARCHY = "hierarchy"
    OWN_ORGANIZATION = "own_organization"


ROLE_SCOPES: dict[Role, ScopeRule] = {
    Role.OWNER: ScopeRule.GLOBAL,
    Role.ADMIN: ScopeRule.HIERARCHY,
    Role.VIEWER: ScopeRule.OWN_ORGANIZATION,
}

OPERATION_PERMISSIONS: dict[tuple[ResourceKind, Operation], Permission] = {
    (ResourceKind.TASK, Operation.CREATE): Permission.TASK_CREATE,
    (ResourceKind.TASK, Operation.READ): Permission.TASK_READ,
    (ResourceKind.TASK, Operation.UPDATE): Permission.TASK_UPDATE,
    (ResourceKind.TASK, Operation.DELETE): Permission.TASK_DELETE,
    (ResourceKind.ORGANIZATION, Operation.CREATE): Permission.ORG_UPDATE,
    (ResourceKind.ORGANIZATION, Operation.READ): Permission.ORG_READ,
    (ResourceKind.ORGANIZATION, Operation.UPDATE): Permission.ORG_UPDATE,
    (ResourceKind.ORGANIZATION, Operation.DELETE): Permission.ORG_DELETE,
}


def permission_for(operation: Operation, resource_kind: ResourceKind = ResourceKind.TASK) -> Permission:
    """Permission required to perform operation on a resource of resource_kind."""
    return OPERATION_PERMISSIONS[(resource_kind, operation)]


@dataclass(frozen=True)
class ResourceRef:
    """
    Minimal view of a resource for an access decision.

    Task rows can be passed to authorize() directly; ResourceRef covers the
    cases where no row exists yet (task creation) or the resource is an
    organization.
    """

    organization_id: str
    created_by_id: Optional[str] = None
    kind: ResourceKind = ResourceKind.TASK

    @classmethod
    def new_task_in(cls, organization_id: str) -> "ResourceRef":
        return cls(organization_id=organization_id, kind=ResourceKind.TASK)

    @classmethod
    def organization(cls, organization_id: str) -> "ResourceRef":
        return cls(organization_id=organization_id, kind=ResourceKind.ORGANIZATION)


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    kind: Optional[DenialKind] = None
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, kind: DenialKind, reason: str) -> "AccessDecision":
        return cls(allowed=False, kind=kind, reason=reason)


class AccessDecisionEngine:
    """
    Decides whether a principal may perform an operation on a resource.

    Holds no mutable state; the permission and scope tables are injectable so
    additional roles can be introduced without changing this class.
    """

    def __init__(
        self,
        directory: OrganizationDirectory,
        role_permissions: Mapping[Any, frozenset[Permission]] = ROLE_PERMISSIONS,
        role_scopes: Mapping[Any, ScopeRule] = ROLE_SCOPES,
        endpoint_requirements: Mapping[str, EndpointRequirement] = ENDPOINT_REQUIREMENTS,
    ):
        self.directory = directory
        self.role_permissions = role_permissions
        self.role_scopes = role_scopes
        self.endpoint_requirements = endpoint_requirements

    def _resolve_role(self, value: Any) -> Optional[Any]:
        try:
            role = Role(value)
        except ValueError:
            role = value
        try:
            known = role in self.role_permissions
        except TypeError:
            # unhashable garbage in the role field
            return None
        return role if known else None

    def _scope_rule(self, role: Any) -> ScopeRule:
        return self.role_scopes.get(role, ScopeRule.OWN_ORGANIZATION)

    def _preflight(self, user: Optional[Principal]) -> tuple[Optional[Any], Optional[AccessDecision]]:
        if user is None or not user.is_active:
            return None, AccessDecision.deny(DenialKind.NOT_AUTHENTICATED, "not authenticated")
        role = self._resolve_role(user.role)
        if role is None:
            return None, AccessDecision.deny(DenialKind.INVALID_ROLE, "invalid role")
        return role, None

    def _in_scope(self, user: Principal, rule: ScopeRule, organization_id: str) -> bool:
        if rule is ScopeRule.GLOBAL:
            return True
        if rule is ScopeRule.HIERARCHY:
            return organization_id in self.directory.descendants(user.organization_id)
        return organization_id == user.organization_id

    def authorize(self, user: Optional[Principal], resource: Any, operation: Operation) -> AccessDecision:
        """
        Decide whether user may perform operation on resource.

        Args:
            user: Authenticated principal, or None if the request carried none
            resource: Anything with organization_id (and created_by_id for
                ownership checks), e.g. a Task row or a ResourceRef
            operation: Operation being attempted

        Returns:
            AccessDecision; kind and reason are set on denial
        """
        role, denied = self._preflight(user)
        if denied is not None:
            return denied

        resource_kind = getattr(resource, "kind", ResourceKind.TASK)
        required = permission_for(operation, resource_kind)
        if not has_permission(role, required, self.role_permissions):
            return AccessDecision.deny(
                DenialKind.PERMISSION_DENIED,
                f"role lacks permission {required.value}",
            )

        rule = self._scope_rule(role)
        if not self._in_scope(user, rule, resource.organization_id):
            return AccessDecision.deny(
                DenialKind.SCOPE_DENIED,
                f"organization {resource.organization_id} is outside {rule.value} scope",
            )

        if operation in (Operation.UPDATE, Operation.DELETE) and rule is ScopeRule.OWN_ORGANIZATION:
            if getattr(resource, "created_by_id", None) != user.id:
                return AccessDecision.deny(
                    DenialKind.OWNERSHIP_DENIED,
                    "only the creator may modify this resource",
                )

        return AccessDecision.allow()

    def accessible_organization_ids(self, user: Optional[Principal]) -> Optional[set[str]]:
        """
        Organizations whose resources user may see, for pre-filtering listings.

        Returns:
            None for a global-scope role (no filter needed); otherwise the set
            of reachable organization IDs, empty when the principal is missing,
            inactive, or has an invalid role
        """
        role, denied = self._preflight(user)
        if denied is not None:
            return set()

        rule = self._scope_rule(role)
        if rule is ScopeRule.GLOBAL:
            return None
        if rule is ScopeRule.HIERARCHY:
            return self.directory.descendants(user.organization_id)
        return {user.organization_id}

    def check_endpoint(self, user: Optional[Principal], action: str) -> AccessDecision:
        """
        Check the static per-action requirement (permission and role set).

        Raises:
            ValueError: If action has no declared requirement
        """
        requirement = self.endpoint_requirements.get(action)
        if requirement is None:
            raise ValueError(f"unknown endpoint action: {action}")

        role, denied = self._preflight(user)
        if denied is not None:
            return denied

        if requirement.roles is not None and role not in requirement.roles:
            return AccessDecision.deny(DenialKind.PERMISSION_DENIED, f"role not allowed for {action}")
        if not has_permission(role, requirement.permission, self.role_permissions):
            return AccessDecision.deny(
                DenialKind.PERMISSION_DENIED,
                f"role lacks permission {requirement.permission.value}",
            )
        return AccessDecision.allow()
