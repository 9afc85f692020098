from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from orgtasks.models.task import TaskStatus, TaskPriority


class TaskCreate(BaseModel):
    """Schema for creating a task in the caller's organization"""

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    category: Optional[str] = Field(None, max_length=100)
    assigned_to_id: Optional[str] = None
    due_date: Optional[datetime] = None


class TaskUpdate(BaseModel):
    """Schema for updating a task (all fields optional, organization is immutable)"""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    category: Optional[str] = Field(None, max_length=100)
    assigned_to_id: Optional[str] = None
    due_date: Optional[datetime] = None

    model_config = {"extra": "forbid"}


class TaskResponse(BaseModel):
    """Schema for task response"""

    id: str
    title: str
    description: Optional[str]
    status: TaskStatus
    priority: TaskPriority
    category: Optional[str]
    assigned_to_id: Optional[str]
    created_by_id: str
    organization_id: str
    due_date: Optional[datetime]
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskListResponse(BaseModel):
    """Schema for paginated task list"""

    tasks: list[TaskResponse]
    total: int
    limit: int
    offset: int
