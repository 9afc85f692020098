import logging
from datetime import datetime, UTC
from typing import Optional
from sqlalchemy.orm import Session

from orgtasks.models.principal import Principal
from orgtasks.models.request_context import ClientInfo
from orgtasks.models.task import Task, TaskStatus
from orgtasks.repositories.task_repository import TaskRepository
from orgtasks.repositories.user_repository import UserRepository
from orgtasks.schemas.task_schemas import TaskCreate, TaskUpdate
from orgtasks.core.exceptions import NotFoundException, ValidationException
from orgtasks.services.access_control import Operation, ResourceRef
from orgtasks.services.audit_service import AuditService

logger = logging.getLogger(__name__)

RESOURCE = "task"
REQUIRED_FIELDS = {"title", "status", "priority"}


class TaskService:
    """Service layer for task business logic"""

    def __init__(self, db: Session, client: Optional[ClientInfo] = None):
        self.db = db
        self.task_repo = TaskRepository(db)
        self.user_repo = UserRepository(db)
        self.audit = AuditService(db, client)
        self.authz = self.audit.authz

    def _get_existing(self, task_id: str) -> Task:
        task = self.task_repo.get_by_id(task_id)
        if not task:
            raise NotFoundException(f"Task {task_id} not found")
        return task

    def _validate_assignee(self, assigned_to_id: str, principal: Principal) -> None:
        """Assignee must be an active user inside the caller's reach."""
        assignee = self.user_repo.get_by_id(assigned_to_id)
        if not assignee or not assignee.is_active:
            raise ValidationException("Invalid assignee")

        reachable = self.authz.accessible_organization_ids(principal)
        if reachable is not None and assignee.organization_id not in reachable:
            raise ValidationException("Invalid assignee")

    def create_task(self, task_data: TaskCreate, principal: Principal) -> Task:
        """
        Create a task in the caller's own organization.

        Args:
            task_data: Task creation data
            principal: Current principal

        Returns:
            Created task

        Raises:
            ForbiddenException: If role lacks TASK_CREATE or own organization is out of reach
            ValidationException: If assignee is unknown, inactive or out of reach
        """
        self.authz.check_endpoint(principal, "tasks:create", RESOURCE)
        self.authz.authorize(
            principal,
            ResourceRef.new_task_in(principal.organization_id),
            Operation.CREATE,
            RESOURCE,
            "new",
        )

        if task_data.assigned_to_id is not None:
            self._validate_assignee(task_data.assigned_to_id, principal)

        task = Task(
            title=task_data.title,
            description=task_data.description,
            status=task_data.status,
            priority=task_data.priority,
            category=task_data.category,
            assigned_to_id=task_data.assigned_to_id,
            due_date=task_data.due_date,
            created_by_id=principal.id,
            organization_id=principal.organization_id,
            completed_at=datetime.now(UTC) if task_data.status == TaskStatus.COMPLETED else None,
        )
        task = self.task_repo.create(task)

        self.audit.record(principal.id, "task:create", RESOURCE, task.id)
        logger.info("Task %s created by %s in organization %s", task.id, principal.id, task.organization_id)
        return task

    def list_tasks(
        self,
        principal: Principal,
        status: Optional[TaskStatus] = None,
        organization_id: Optional[str] = None,
        assigned_to_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[Task], int]:
        """
        List tasks in every organization the caller can reach.

        Filtering happens in one query against the reachable organization
        set, not per task.

        Args:
            principal: Current principal
            status: Filter by status
            organization_id: Narrow to one organization (ignored if out of reach)
            assigned_to_id: Filter by assignee
            limit: Max results to return
            offset: Pagination offset

        Returns:
            Tuple of (tasks, total_count)
        """
        self.authz.check_endpoint(principal, "tasks:list", RESOURCE)

        reachable = self.authz.accessible_organization_ids(principal)
        if organization_id is not None:
            reachable = {organization_id} if reachable is None else reachable & {organization_id}

        tasks, total = self.task_repo.get_with_filters(
            organization_ids=reachable,
            status=status,
            assigned_to_id=assigned_to_id,
            limit=limit,
            offset=offset,
        )

        self.audit.record(principal.id, "task:list", RESOURCE, "*")
        return tasks, total

    def get_task(self, task_id: str, principal: Principal) -> Task:
        """
        Get a task the caller may read.

        Raises:
            NotFoundException: If task doesn't exist
            ForbiddenException: If task is outside the caller's reach
        """
        self.authz.check_endpoint(principal, "tasks:read", RESOURCE, task_id)
        task = self._get_existing(task_id)
        self.authz.authorize(principal, task, Operation.READ, RESOURCE, task_id)

        self.audit.record(principal.id, "task:read", RESOURCE, task.id)
        return task

    def update_task(self, task_id: str, task_data: TaskUpdate, principal: Principal) -> Task:
        """
        Update task fields.

        Moving to COMPLETED stamps completed_at; moving away clears it.

        Raises:
            NotFoundException: If task doesn't exist
            ForbiddenException: If caller may not modify the task
            ValidationException: If new assignee is invalid
        """
        self.authz.check_endpoint(principal, "tasks:update", RESOURCE, task_id)
        task = self._get_existing(task_id)
        self.authz.authorize(principal, task, Operation.UPDATE, RESOURCE, task_id)

        changes = task_data.model_dump(exclude_unset=True)
        if changes.get("assigned_to_id") is not None:
            self._validate_assignee(changes["assigned_to_id"], principal)

        new_status = changes.get("status")
        if new_status is not None and new_status != task.status:
            task.completed_at = datetime.now(UTC) if new_status == TaskStatus.COMPLETED else None

        for field, value in changes.items():
            if value is None and field in REQUIRED_FIELDS:
                continue
            setattr(task, field, value)

        task = self.task_repo.update(task)

        self.audit.record(
            principal.id,
            "task:update",
            RESOURCE,
            task.id,
            details=",".join(sorted(changes)) or None,
        )
        return task

    def delete_task(self, task_id: str, principal: Principal) -> None:
        """
        Delete a task.

        Raises:
            NotFoundException: If task doesn't exist
            ForbiddenException: If caller may not delete the task
        """
        self.authz.check_endpoint(principal, "tasks:delete", RESOURCE, task_id)
        task = self._get_existing(task_id)
        self.authz.authorize(principal, task, Operation.DELETE, RESOURCE, task_id)

        self.task_repo.delete(task)
        self.audit.record(principal.id, "task:delete", RESOURCE, task_id)
