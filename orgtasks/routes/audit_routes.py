from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from orgtasks.database import get_db
from orgtasks.dependencies import get_client_info, get_current_principal
from orgtasks.models.principal import Principal
from orgtasks.models.request_context import ClientInfo
from orgtasks.services.audit_service import AuditService
from orgtasks.schemas.audit_schemas import AuditLogResponse

router = APIRouter()


@router.get("/logs", response_model=list[AuditLogResponse])
async def list_audit_logs(
    user_id: Optional[str] = Query(None, description="Filter by user (OWNER only)"),
    limit: Optional[int] = Query(None, ge=1),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    client: ClientInfo = Depends(get_client_info),
):
    """
    List recent audit entries, newest first.

    - **Requires AUDIT_READ** and role OWNER or ADMIN
    - ADMIN sees only their own entries
    """
    service = AuditService(db, client)
    return service.list_logs(principal, user_id=user_id, limit=limit)
