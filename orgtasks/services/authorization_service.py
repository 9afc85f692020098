"""Request-scoped glue between resource services and the access decision engine."""

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from orgtasks.config import settings
from orgtasks.core.exceptions import (
    ForbiddenException,
    HierarchyLookupError,
    UnauthorizedException,
)
from orgtasks.models.audit_log import AuditLog
from orgtasks.models.principal import Principal
from orgtasks.models.request_context import ClientInfo
from orgtasks.repositories.audit_log_repository import AuditLogRepository
from orgtasks.repositories.organization_repository import OrganizationRepository
from orgtasks.services.access_control import (
    AccessDecision,
    AccessDecisionEngine,
    DenialKind,
    Operation,
)
from orgtasks.services.organization_directory import (
    OrganizationDirectory,
    OrganizationSnapshot,
    OrganizationStore,
)

logger = logging.getLogger(__name__)


class AuthorizationService:
    """
    Runs access decisions for one request and turns denials into exceptions.

    Every denial is logged with its internal kind and written to the audit
    trail; callers only ever see UnauthorizedException (no principal) or a
    generic ForbiddenException, so responses do not reveal which check
    failed. A storage failure while resolving the hierarchy is raised as
    HierarchyLookupError, which rejects the request.
    """

    def __init__(self, db: Session, client: Optional[ClientInfo] = None):
        self.db = db
        self.client = client or ClientInfo()
        self.org_repo = OrganizationRepository(db)
        self.audit_repo = AuditLogRepository(db)
        self._engine: Optional[AccessDecisionEngine] = None

    @property
    def engine(self) -> AccessDecisionEngine:
        if self._engine is None:
            self._engine = AccessDecisionEngine(OrganizationDirectory(self._load_store()))
        return self._engine

    @property
    def directory(self) -> OrganizationDirectory:
        return self.engine.directory

    def invalidate(self) -> None:
        """Drop the cached hierarchy after this request changes the organization tree."""
        self._engine = None

    def _load_store(self) -> OrganizationStore:
        if not settings.ORG_HIERARCHY_PRELOAD:
            return self.org_repo
        try:
            return OrganizationSnapshot(self.org_repo.get_all())
        except SQLAlchemyError as e:
            logger.error("Failed to load organization hierarchy: %s", e)
            raise HierarchyLookupError("Organization hierarchy unavailable") from e

    def _decide(self, fn, *args) -> Any:
        try:
            return fn(*args)
        except SQLAlchemyError as e:
            logger.error("Organization lookup failed during authorization: %s", e)
            raise HierarchyLookupError("Organization hierarchy unavailable") from e

    def authorize(
        self,
        principal: Optional[Principal],
        resource: Any,
        operation: Operation,
        resource_name: str,
        resource_id: str,
    ) -> None:
        """
        Require that principal may perform operation on resource.

        Raises:
            UnauthorizedException: If no active principal
            ForbiddenException: On any other denial
            HierarchyLookupError: If the organization store fails
        """
        decision = self._decide(self.engine.authorize, principal, resource, operation)
        self._enforce(principal, decision, f"{resource_name}:{operation.value}", resource_name, resource_id)

    def check_endpoint(
        self,
        principal: Optional[Principal],
        action: str,
        resource_name: str,
        resource_id: str = "*",
    ) -> None:
        """Require the static permission/role declaration for action."""
        decision = self.engine.check_endpoint(principal, action)
        self._enforce(principal, decision, action, resource_name, resource_id)

    def accessible_organization_ids(self, principal: Optional[Principal]) -> Optional[set[str]]:
        """Reachable organization IDs for principal, or None for global access."""
        return self._decide(self.engine.accessible_organization_ids, principal)

    def require_global_scope(
        self,
        principal: Principal,
        action: str,
        resource_name: str,
        resource_id: str,
    ) -> None:
        """Require a role with global reach, e.g. to create a root organization."""
        if self.accessible_organization_ids(principal) is None:
            return
        decision = AccessDecision.deny(DenialKind.SCOPE_DENIED, "global scope required")
        self._enforce(principal, decision, action, resource_name, resource_id)

    def _enforce(
        self,
        principal: Optional[Principal],
        decision: AccessDecision,
        action: str,
        resource_name: str,
        resource_id: str,
    ) -> None:
        if decision.allowed:
            return

        principal_id = principal.id if principal is not None else None
        logger.info(
            "Access denied (%s): principal=%s action=%s %s=%s reason=%s",
            decision.kind.value,
            principal_id,
            action,
            resource_name,
            resource_id,
            decision.reason,
        )

        if principal_id is not None:
            self.audit_repo.create(
                AuditLog(
                    user_id=principal_id,
                    action=action,
                    resource=resource_name,
                    resource_id=resource_id,
                    details=f"denied: {decision.kind.value}",
                    ip_address=self.client.ip_address,
                    user_agent=self.client.user_agent,
                )
            )

        if decision.kind is DenialKind.NOT_AUTHENTICATED:
            raise UnauthorizedException("Authentication required")
        raise ForbiddenException("Forbidden")
