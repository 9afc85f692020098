from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class OrganizationCreate(BaseModel):
    """Create a child organization (or a root organization when parent_id is omitted)"""

    name: str = Field(..., min_length=1, max_length=255)
    parent_id: Optional[str] = None


class OrganizationUpdate(BaseModel):
    """
    Update an organization.

    Only fields present in the request body are applied; send
    "parent_id": null explicitly to make the organization a root.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    parent_id: Optional[str] = None
    is_active: Optional[bool] = None


class OrganizationResponse(BaseModel):
    """Organization details response"""

    id: str
    name: str
    parent_id: Optional[str]
    level: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrganizationHierarchyResponse(BaseModel):
    """Position of an organization in the tree"""

    id: str
    level: int
    root_id: Optional[str]
    ancestor_ids: list[str] = Field(..., description="Nearest first, starting with id itself")
    descendant_ids: list[str] = Field(..., description="Sorted; includes id itself")
