"""Organization model: nodes of the department tree."""

from uuid import uuid4

from sqlalchemy import String, Integer, Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from orgtasks.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from orgtasks.models.user import User


class Organization(Base, TimestampMixin):
    """
    A department in the organization tree.

    Root organizations have parent_id = None. `level` is the depth from the
    root (root = 0); it is maintained by OrganizationService on create and
    reparent, and is informational only: hierarchy traversal always walks
    the live parent_id links.

    Organizations are never hard-deleted. Setting is_active = False removes
    the organization from traversal and access while keeping task and audit
    history intact.
    """

    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("organizations.id"),
        nullable=True,
        index=True,  # findChildren(parent_id) runs once per tree level
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    users: Mapped[list["User"]] = relationship("User", back_populates="organization")

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name='{self.name}', parent_id={self.parent_id})>"
