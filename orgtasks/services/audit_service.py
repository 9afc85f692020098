from typing import Optional
from sqlalchemy.orm import Session

from orgtasks.config import settings
from orgtasks.models.audit_log import AuditLog
from orgtasks.models.principal import Principal
from orgtasks.models.request_context import ClientInfo
from orgtasks.repositories.audit_log_repository import AuditLogRepository
from orgtasks.services.authorization_service import AuthorizationService


class AuditService:
    """Service layer for the audit trail"""

    def __init__(self, db: Session, client: Optional[ClientInfo] = None):
        self.db = db
        self.client = client or ClientInfo()
        self.repo = AuditLogRepository(db)
        self.authz = AuthorizationService(db, self.client)

    def record(
        self,
        user_id: str,
        action: str,
        resource: str,
        resource_id: str,
        details: Optional[str] = None,
    ) -> AuditLog:
        """
        Append an audit entry for an allowed action.

        Denied attempts are recorded by AuthorizationService. Both stamp the
        caller's address and User-Agent from the request.

        Args:
            user_id: Acting user
            action: Action name, e.g. "task:update"
            resource: Resource type, e.g. "task"
            resource_id: Resource ID, or "*" for listings
            details: Optional free-form details

        Returns:
            Created AuditLog entry
        """
        entry = AuditLog(
            user_id=user_id,
            action=action,
            resource=resource,
            resource_id=resource_id,
            details=details,
            ip_address=self.client.ip_address,
            user_agent=self.client.user_agent,
        )
        return self.repo.create(entry)

    def list_logs(
        self,
        principal: Principal,
        user_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[AuditLog]:
        """
        List recent audit entries (OWNER or ADMIN).

        OWNER sees every user's entries, optionally filtered by user_id.
        ADMIN always sees only their own entries; user_id is ignored.

        Raises:
            ForbiddenException: If role lacks audit access
        """
        self.authz.check_endpoint(principal, "audit:list", "audit_log")

        target_user_id = user_id if principal.is_owner() else principal.id

        if limit is None:
            limit = settings.AUDIT_LOG_DEFAULT_LIMIT
        limit = max(1, min(limit, settings.AUDIT_LOG_MAX_LIMIT))

        entries = self.repo.get_recent(user_id=target_user_id, limit=limit)
        self.record(principal.id, "audit_log:list", "audit_log", "*")
        return entries
