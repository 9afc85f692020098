import logging
from collections import deque
from typing import Optional
from sqlalchemy.orm import Session

from orgtasks.models.organization import Organization
from orgtasks.models.principal import Principal
from orgtasks.models.request_context import ClientInfo
from orgtasks.repositories.organization_repository import OrganizationRepository
from orgtasks.schemas.organization_schemas import OrganizationCreate, OrganizationUpdate
from orgtasks.core.exceptions import NotFoundException, ValidationException
from orgtasks.services.access_control import Operation, ResourceRef
from orgtasks.services.audit_service import AuditService

logger = logging.getLogger(__name__)

RESOURCE = "organization"


class OrganizationService:
    """Service layer for organization tree management"""

    def __init__(self, db: Session, client: Optional[ClientInfo] = None):
        self.db = db
        self.org_repo = OrganizationRepository(db)
        self.audit = AuditService(db, client)
        self.authz = self.audit.authz

    def _get_existing(self, org_id: str) -> Organization:
        org = self.org_repo.find_by_id(org_id)
        if not org:
            raise NotFoundException(f"Organization {org_id} not found")
        return org

    def _get_active_parent(self, parent_id: str) -> Organization:
        parent = self.org_repo.find_by_id(parent_id)
        if not parent or not parent.is_active:
            raise ValidationException("Parent organization not found or inactive")
        return parent

    def _check_not_own_organization(self, org: Organization, principal: Principal) -> None:
        if org.id == principal.organization_id:
            raise ValidationException("Cannot deactivate your own organization")

    def _subtree(self, org: Organization) -> list[tuple[Organization, int]]:
        """
        Every organization below org, active or not, with its depth relative to org.

        Walks stored links directly (not the directory) so inactive branches
        are included when levels are recomputed.
        """
        result: list[tuple[Organization, int]] = []
        visited = {org.id}
        queue = deque([(org, 0)])
        while queue:
            current, depth = queue.popleft()
            for child in self.org_repo.find_children(current.id):
                if child.id in visited:
                    continue
                visited.add(child.id)
                result.append((child, depth + 1))
                queue.append((child, depth + 1))
        return result

    def list_organizations(self, principal: Principal) -> list[Organization]:
        """
        List active organizations the caller can reach.

        Args:
            principal: Current principal

        Returns:
            Organizations ordered by level, then name
        """
        self.authz.check_endpoint(principal, "orgs:list", RESOURCE)

        reachable = self.authz.accessible_organization_ids(principal)
        if reachable is None:
            orgs = self.org_repo.get_all_active()
        else:
            orgs = self.org_repo.get_active_by_ids(reachable)

        self.audit.record(principal.id, "organization:list", RESOURCE, "*")
        return orgs

    def get_organization(self, org_id: str, principal: Principal) -> Organization:
        """
        Get one organization.

        Raises:
            NotFoundException: If organization doesn't exist
            ForbiddenException: If organization is outside the caller's reach
        """
        self.authz.check_endpoint(principal, "orgs:read", RESOURCE, org_id)
        org = self._get_existing(org_id)
        self.authz.authorize(principal, ResourceRef.organization(org.id), Operation.READ, RESOURCE, org_id)

        self.audit.record(principal.id, "organization:read", RESOURCE, org.id)
        return org

    def get_hierarchy(self, org_id: str, principal: Principal) -> dict:
        """
        Describe where an organization sits in the tree.

        Ancestors and root outside the caller's reach are left out, so the
        response shows no more of the tree than the caller could read
        organization by organization.

        Returns:
            Dict with id, level, root_id (None when out of reach), ancestor_ids
            (nearest first) and descendant_ids (sorted)
        """
        org = self.get_organization(org_id, principal)
        directory = self.authz.directory
        reachable = self.authz.accessible_organization_ids(principal)

        ancestor_ids = directory.ancestor_chain(org.id)
        root_id = directory.root(org.id)
        descendant_ids = directory.descendants(org.id)
        if reachable is not None:
            ancestor_ids = [a for a in ancestor_ids if a in reachable]
            descendant_ids &= reachable
            if root_id not in reachable:
                root_id = None

        return {
            "id": org.id,
            "level": directory.level(org.id),
            "root_id": root_id,
            "ancestor_ids": ancestor_ids,
            "descendant_ids": sorted(descendant_ids),
        }

    def create_organization(self, org_data: OrganizationCreate, principal: Principal) -> Organization:
        """
        Create a child organization, or a root organization when no parent is given.

        Creating a root requires global reach.

        Raises:
            ForbiddenException: If caller may not modify the parent (or create roots)
            ValidationException: If parent is unknown or inactive
        """
        self.authz.check_endpoint(principal, "orgs:create", RESOURCE)

        if org_data.parent_id is None:
            self.authz.require_global_scope(principal, "organization:create", RESOURCE, "new")
            level = 0
        else:
            parent = self._get_active_parent(org_data.parent_id)
            self.authz.authorize(
                principal, ResourceRef.organization(parent.id), Operation.CREATE, RESOURCE, parent.id
            )
            level = parent.level + 1

        org = Organization(name=org_data.name, parent_id=org_data.parent_id, level=level)
        org = self.org_repo.create(org)
        self.authz.invalidate()

        self.audit.record(principal.id, "organization:create", RESOURCE, org.id)
        logger.info("Organization %s created under %s by %s", org.id, org.parent_id, principal.id)
        return org

    def update_organization(
        self, org_id: str, org_data: OrganizationUpdate, principal: Principal
    ) -> Organization:
        """
        Rename, reparent, activate or deactivate an organization.

        Reparenting recomputes level for the organization and its whole
        subtree.

        Raises:
            NotFoundException: If organization doesn't exist
            ForbiddenException: If caller may not modify it or the new parent
            ValidationException: If the move would create a cycle or the new
                parent is unknown or inactive, or the caller
                deactivates their own organization
        """
        self.authz.check_endpoint(principal, "orgs:update", RESOURCE, org_id)
        org = self._get_existing(org_id)
        self.authz.authorize(principal, ResourceRef.organization(org.id), Operation.UPDATE, RESOURCE, org_id)

        changes = org_data.model_dump(exclude_unset=True)

        if changes.get("is_active") is False:
            self._check_not_own_organization(org, principal)

        # move first: a rejected move must leave no pending edits behind
        if "parent_id" in changes and changes["parent_id"] != org.parent_id:
            self._move(org, changes["parent_id"], principal)

        if changes.get("name") is not None:
            org.name = changes["name"]

        if changes.get("is_active") is not None:
            org.is_active = changes["is_active"]

        org = self.org_repo.update(org)
        self.authz.invalidate()

        self.audit.record(
            principal.id,
            "organization:update",
            RESOURCE,
            org.id,
            details=",".join(sorted(changes)) or None,
        )
        return org

    def _move(self, org: Organization, new_parent_id: Optional[str], principal: Principal) -> None:
        subtree = self._subtree(org)

        if new_parent_id is None:
            self.authz.require_global_scope(principal, "organization:update", RESOURCE, org.id)
            new_level = 0
        else:
            if new_parent_id == org.id:
                raise ValidationException("Organization cannot be its own parent")
            if any(child.id == new_parent_id for child, _ in subtree):
                raise ValidationException("Organization cannot move under its own descendant")
            parent = self._get_active_parent(new_parent_id)
            self.authz.authorize(
                principal, ResourceRef.organization(parent.id), Operation.UPDATE, RESOURCE, parent.id
            )
            new_level = parent.level + 1

        org.parent_id = new_parent_id
        org.level = new_level
        for child, depth in subtree:
            child.level = new_level + depth

        logger.info(
            "Organization %s moved under %s (%d descendants relevelled)",
            org.id,
            new_parent_id,
            len(subtree),
        )

    def deactivate_organization(self, org_id: str, principal: Principal) -> Organization:
        """
        Soft-delete an organization (is_active = False).

        Its subtree becomes unreachable through hierarchy traversal; rows are
        kept for history.

        Raises:
            NotFoundException: If organization doesn't exist
            ForbiddenException: If caller may not delete it
            ValidationException: If caller targets their own organization
        """
        self.authz.check_endpoint(principal, "orgs:delete", RESOURCE, org_id)
        org = self._get_existing(org_id)
        self.authz.authorize(principal, ResourceRef.organization(org.id), Operation.DELETE, RESOURCE, org_id)

        self._check_not_own_organization(org, principal)

        org.is_active = False
        org = self.org_repo.update(org)
        self.authz.invalidate()

        self.audit.record(principal.id, "organization:delete", RESOURCE, org.id)
        return org
