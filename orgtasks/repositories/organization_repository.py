"""Repository for Organization model operations."""

from sqlalchemy.orm import Session
from orgtasks.models.organization import Organization


class OrganizationRepository:
    """
    Repository for Organization model operations.

    Also serves as the storage collaborator of OrganizationDirectory through
    find_by_id / find_children. Both return inactive rows too; the directory
    decides what counts as absent.
    """

    def __init__(self, db: Session):
        self.db = db

    def find_by_id(self, org_id: str) -> Organization | None:
        """
        Get organization by ID, active or not.

        Args:
            org_id: Organization ID

        Returns:
            Organization object or None if not found
        """
        return self.db.query(Organization).filter(Organization.id == org_id).first()

    def find_children(self, parent_id: str) -> list[Organization]:
        """
        Get direct children of an organization, active or not.

        Args:
            parent_id: Parent organization ID

        Returns:
            List of child Organization objects
        """
        return self.db.query(Organization).filter(Organization.parent_id == parent_id).all()

    def get_all(self) -> list[Organization]:
        """
        Get every organization, used to build a per-request hierarchy snapshot.

        Returns:
            List of all Organization objects
        """
        return self.db.query(Organization).all()

    def get_active_by_ids(self, org_ids: set[str]) -> list[Organization]:
        """Get active organizations whose ID is in org_ids, ordered by level then name"""
        if not org_ids:
            return []
        return (
            self.db.query(Organization)
            .filter(Organization.id.in_(org_ids), Organization.is_active.is_(True))
            .order_by(Organization.level, Organization.name)
            .all()
        )

    def get_all_active(self) -> list[Organization]:
        """Get all active organizations, ordered by level then name"""
        return (
            self.db.query(Organization)
            .filter(Organization.is_active.is_(True))
            .order_by(Organization.level, Organization.name)
            .all()
        )

    def create(self, organization: Organization) -> Organization:
        """
        Create a new organization.

        Args:
            organization: Organization object to create

        Returns:
            Created Organization object with ID populated
        """
        self.db.add(organization)
        self.db.commit()
        self.db.refresh(organization)
        return organization

    def update(self, organization: Organization) -> Organization:
        """
        Commit pending changes to an organization (and any other dirty rows
        in the session, e.g. relevelled descendants).

        Args:
            organization: Organization object with updated fields

        Returns:
            Updated Organization object
        """
        self.db.commit()
        self.db.refresh(organization)
        return organization
