"""Permission tags gating individual operation kinds."""

from enum import Enum as PyEnum


class Permission(str, PyEnum):
    """Closed set of capability tags. Add a tag here and in ROLE_PERMISSIONS."""

    # Task permissions
    TASK_CREATE = "task:create"
    TASK_READ = "task:read"
    TASK_UPDATE = "task:update"
    TASK_DELETE = "task:delete"

    # User permissions
    USER_CREATE = "user:create"
    USER_READ = "user:read"
    USER_UPDATE = "user:update"
    USER_DELETE = "user:delete"

    # Organization permissions
    ORG_READ = "org:read"
    ORG_UPDATE = "org:update"
    ORG_DELETE = "org:delete"

    # Audit permissions
    AUDIT_READ = "audit:read"
