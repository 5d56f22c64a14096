# task_manager/schemas/task_schema.py
from datetime import date, datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from task_manager.schemas.base import FormModel
from task_manager.tasks.models import TaskItem, TaskStatus, TaskPriority


def default_due_date() -> date:
    return date.today() + timedelta(days=7)


class TaskProgressForm(FormModel):
    """What an assignee may submit when editing their own task."""

    status: TaskStatus
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, v):
        return TaskStatus.parse(v)


class TaskForm(TaskProgressForm):
    status: TaskStatus = TaskStatus.NOT_STARTED
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=1000)
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date
    assigned_to_id: int

    @field_validator("priority", mode="before")
    @classmethod
    def _parse_priority(cls, v):
        return TaskPriority.parse(v)


class TaskEditForm(TaskForm):
    # no create-time defaults on edit: a missing value must not reset the task
    status: TaskStatus
    priority: TaskPriority
    version: int


class TaskProgressEditForm(TaskProgressForm):
    version: int


class TaskOut(BaseModel):
    id: int
    title: str
    description: str
    status: str
    status_label: str
    priority: str
    priority_label: str
    due_date: date
    created_date: datetime
    last_updated: datetime
    completed_date: Optional[datetime] = None
    notes: Optional[str] = None
    assigned_to_id: int
    assigned_to_name: Optional[str] = None
    is_overdue: bool
    progress_percentage: int
    version: int

    @classmethod
    def from_task(cls, task: TaskItem, assignee=None) -> "TaskOut":
        status = TaskStatus.parse(task.status)
        priority = TaskPriority.parse(task.priority)
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=status.code,
            status_label=status.label,
            priority=priority.code,
            priority_label=priority.label,
            due_date=task.due_date,
            created_date=task.created_date,
            last_updated=task.last_updated,
            completed_date=task.completed_date,
            notes=task.notes,
            assigned_to_id=task.assigned_to_id,
            assigned_to_name=assignee.full_name if assignee is not None else None,
            is_overdue=task.is_overdue,
            progress_percentage=task.progress_percentage,
            version=task.version,
        )
