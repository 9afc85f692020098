"""Authenticated principal passed explicitly into authorization calls."""

from dataclasses import dataclass

from orgtasks.models.role import Role
from orgtasks.models.user import User


@dataclass(frozen=True)
class Principal:
    """
    The caller identity for a single request.

    Built from the verified JWT subject and the stored user row, then passed
    as a parameter to every service and access-decision call. Nothing in the
    authorization core reads identity from ambient state.

    Attributes:
        id: User ID
        organization_id: The single organization the user belongs to
        role: Role value; may be an unrecognized string if storage holds one,
            in which case authorization denies with an invalid-role reason
        is_active: Inactive principals are treated as unauthenticated
    """

    id: str
    organization_id: str
    role: Role | str
    is_active: bool = True

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        """Build a principal from a stored user, coercing known role strings to Role."""
        try:
            role: Role | str = Role(user.role)
        except ValueError:
            role = user.role
        return cls(
            id=user.id,
            organization_id=user.organization_id,
            role=role,
            is_active=user.is_active,
        )

    def is_owner(self) -> bool:
        """Check if principal holds the OWNER role."""
        return self.role == Role.OWNER

    def __repr__(self) -> str:
        role = self.role.value if isinstance(self.role, Role) else self.role
        return f"<Principal(id={self.id}, organization_id={self.organization_id}, role={role})>"
