"""Role enum for role-based access control."""

from enum import Enum as PyEnum


class Role(str, PyEnum):
    """
    Coarse-grained actor category.

    Roles are NOT ordered: what a role may do is the explicit permission set
    listed for it in orgtasks.core.permissions.ROLE_PERMISSIONS, and how far
    it reaches in the organization tree is its entry in ROLE_SCOPES.

    - OWNER: every permission, global reach (bypasses organization scoping)
    - ADMIN: task management, reach limited to own organization and descendants
    - VIEWER: read-only, reach limited to own organization
    """

    OWNER = "owner"
    ADMIN = "admin"
    VIEWER = "viewer"
