from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from orgtasks.database import get_db
from orgtasks.dependencies import get_client_info, get_current_principal
from orgtasks.models.principal import Principal
from orgtasks.models.request_context import ClientInfo
from orgtasks.services.organization_service import OrganizationService
from orgtasks.schemas.organization_schemas import (
    OrganizationCreate,
    OrganizationUpdate,
    OrganizationResponse,
    OrganizationHierarchyResponse,
)

router = APIRouter()


@router.get("", response_model=list[OrganizationResponse])
async def list_organizations(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    client: ClientInfo = Depends(get_client_info),
):
    """List active organizations the caller can reach"""
    service = OrganizationService(db, client)
    return service.list_organizations(principal)


@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    data: OrganizationCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    client: ClientInfo = Depends(get_client_info),
):
    """
    Create an organization.

    - **Requires ORG_UPDATE** (OWNER)
    - Omitting parent_id creates a root organization
    """
    service = OrganizationService(db, client)
    return service.create_organization(data, principal)


@router.get("/{org_id}", response_model=OrganizationResponse)
async def get_organization(
    org_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    client: ClientInfo = Depends(get_client_info),
):
    """Get organization details"""
    service = OrganizationService(db, client)
    return service.get_organization(org_id, principal)


@router.get("/{org_id}/hierarchy", response_model=OrganizationHierarchyResponse)
async def get_organization_hierarchy(
    org_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    client: ClientInfo = Depends(get_client_info),
):
    """Ancestors, descendants, root and level of an organization"""
    service = OrganizationService(db, client)
    return service.get_hierarchy(org_id, principal)


@router.patch("/{org_id}", response_model=OrganizationResponse)
async def update_organization(
    org_id: str,
    data: OrganizationUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    client: ClientInfo = Depends(get_client_info),
):
    """
    Rename, move, activate or deactivate an organization.

    - **Requires ORG_UPDATE** (OWNER)
    - Cannot move an organization under itself or its descendants
    """
    service = OrganizationService(db, client)
    return service.update_organization(org_id, data, principal)


@router.delete("/{org_id}", response_model=OrganizationResponse)
async def deactivate_organization(
    org_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    client: ClientInfo = Depends(get_client_info),
):
    """
    Deactivate (soft-delete) an organization.

    - **Requires ORG_DELETE** (OWNER)
    """
    service = OrganizationService(db, client)
    return service.deactivate_organization(org_id, principal)
