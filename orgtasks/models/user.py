from uuid import uuid4

from sqlalchemy import String, Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING

from orgtasks.models.base import Base, TimestampMixin
from orgtasks.models.role import Role

if TYPE_CHECKING:
    from orgtasks.models.organization import Organization


class User(Base, TimestampMixin):
    """
    A member of exactly one organization.

    Credentials live in the auth service; this table only holds what
    authorization needs plus display fields. Users are soft-deleted via
    is_active = False.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organizations.id"), nullable=False, index=True
    )
    # Plain string so an unrecognized value still loads and is denied as an invalid role
    role: Mapped[str] = mapped_column(String(50), nullable=False, default=Role.VIEWER.value)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Relationships
    organization: Mapped["Organization"] = relationship("Organization", back_populates="users")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"
