from typing import Optional
from sqlalchemy.orm import Session

from orgtasks.models.task import Task, TaskStatus


class TaskRepository:
    """Repository for Task model operations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, task_id: str) -> Task | None:
        """Get task by ID without any access filtering"""
        return self.db.query(Task).filter(Task.id == task_id).first()

    def get_with_filters(
        self,
        organization_ids: Optional[set[str]] = None,
        status: Optional[TaskStatus] = None,
        assigned_to_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[Task], int]:
        """
        Get tasks with filters and pagination.

        Args:
            organization_ids: Restrict to these organizations; None means no
                organization filter (global access)
            status: Filter by status
            assigned_to_id: Filter by assignee
            limit: Max results to return
            offset: Pagination offset

        Returns:
            Tuple of (tasks, total_count)
        """
        query = self.db.query(Task)

        if organization_ids is not None:
            if not organization_ids:
                return [], 0
            query = query.filter(Task.organization_id.in_(organization_ids))
        if status is not None:
            query = query.filter(Task.status == status)
        if assigned_to_id is not None:
            query = query.filter(Task.assigned_to_id == assigned_to_id)

        total = query.count()
        tasks = (
            query.order_by(Task.created_at.desc(), Task.id)
            .offset(offset)
            .limit(limit)
            .all()
        )
        return tasks, total

    def create(self, task: Task) -> Task:
        """Create new task"""
        self.db.add(task)
        self.db.commit()
        self.db.refresh(task)
        return task

    def update(self, task: Task) -> Task:
        """Update existing task"""
        self.db.commit()
        self.db.refresh(task)
        return task

    def delete(self, task: Task) -> None:
        """Delete task"""
        self.db.delete(task)
        self.db.commit()
