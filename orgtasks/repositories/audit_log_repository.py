from typing import Optional
from sqlalchemy.orm import Session

from orgtasks.models.audit_log import AuditLog


class AuditLogRepository:
    """Repository for AuditLog model operations (append-only)"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, entry: AuditLog) -> AuditLog:
        """Persist a new audit entry"""
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def get_recent(self, user_id: Optional[str] = None, limit: int = 100) -> list[AuditLog]:
        """
        Get most recent audit entries, newest first.

        Args:
            user_id: Only entries recorded for this user; None for all users
            limit: Max entries to return

        Returns:
            List of AuditLog objects
        """
        query = self.db.query(AuditLog)
        if user_id is not None:
            query = query.filter(AuditLog.user_id == user_id)
        return query.order_by(AuditLog.created_at.desc()).limit(limit).all()
