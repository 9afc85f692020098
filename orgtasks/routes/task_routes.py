from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from orgtasks.database import get_db
from orgtasks.dependencies import get_client_info, get_current_principal
from orgtasks.models.principal import Principal
from orgtasks.models.request_context import ClientInfo
from orgtasks.models.task import TaskStatus
from orgtasks.services.task_service import TaskService
from orgtasks.schemas.task_schemas import (
    TaskCreate,
    TaskUpdate,
    TaskResponse,
    TaskListResponse,
)

router = APIRouter()


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    client: ClientInfo = Depends(get_client_info),
):
    """
    Create a task in the caller's organization.

    - **Requires TASK_CREATE** (OWNER, ADMIN)
    """
    service = TaskService(db, client)
    return service.create_task(data, principal)


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    status: Optional[TaskStatus] = Query(None, description="Filter by status"),
    organization_id: Optional[str] = Query(None, description="Narrow to one organization"),
    assigned_to_id: Optional[str] = Query(None, description="Filter by assignee"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    client: ClientInfo = Depends(get_client_info),
):
    """
    List tasks in every organization the caller can reach.

    - OWNER: all organizations
    - ADMIN: own organization and its descendants
    - VIEWER: own organization only
    """
    service = TaskService(db, client)
    tasks, total = service.list_tasks(
        principal,
        status=status,
        organization_id=organization_id,
        assigned_to_id=assigned_to_id,
        limit=limit,
        offset=offset,
    )
    return TaskListResponse(tasks=tasks, total=total, limit=limit, offset=offset)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    client: ClientInfo = Depends(get_client_info),
):
    """Get a single task"""
    service = TaskService(db, client)
    return service.get_task(task_id, principal)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    data: TaskUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    client: ClientInfo = Depends(get_client_info),
):
    """
    Update a task.

    - **Requires TASK_UPDATE** and the task's organization within reach
    """
    service = TaskService(db, client)
    return service.update_task(task_id, data, principal)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    client: ClientInfo = Depends(get_client_info),
):
    """
    Delete a task.

    - **Requires TASK_DELETE** and the task's organization within reach
    """
    service = TaskService(db, client)
    service.delete_task(task_id, principal)
    return None
