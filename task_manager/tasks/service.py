# task_manager/tasks/service.py
"""
Task workflow: list, view, create, update and delete task items.

Every function takes the acting Principal explicitly and checks the policy
table before touching the store. Writes are one transaction each: commit on
success, rollback on any failure.
"""
import logging
from datetime import datetime
from typing import Any, List, Mapping, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from task_manager import policy
from task_manager.auth.principal import Principal
from task_manager.database import is_valid_id
from task_manager.employees.models import Employee
from task_manager.errors import AssigneeNotFound, ConcurrencyConflict, NotFound
from task_manager.schemas.base import bind_form
from task_manager.schemas.task_schema import TaskForm, TaskEditForm, TaskProgressEditForm
from task_manager.tasks.models import TaskItem, TaskStatus

logger = logging.getLogger(__name__)

TASK_CONFLICT_MESSAGE = "The task was modified by another user. Please reload and try again."


def _load(db: Session, task_id: int) -> TaskItem:
    if not is_valid_id(task_id):
        raise NotFound("Task not found.")
    task = db.query(TaskItem).filter(TaskItem.id == task_id).first()
    if task is None:
        raise NotFound("Task not found.")
    return task


def _require_assignee(db: Session, employee_id: int) -> Employee:
    if not is_valid_id(employee_id):
        raise AssigneeNotFound()
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise AssigneeNotFound()
    return employee


def apply_completion(task: TaskItem, previous_status, now: datetime) -> None:
    """Keep completed_date set exactly while the task is Completed."""
    if task.status == TaskStatus.COMPLETED:
        if previous_status != TaskStatus.COMPLETED or task.completed_date is None:
            task.completed_date = now
    else:
        task.completed_date = None


def _commit(db: Session) -> None:
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise ConcurrencyConflict(TASK_CONFLICT_MESSAGE)
    except IntegrityError:
        # the only constraint a task write can break is the assignee foreign key
        db.rollback()
        raise AssigneeNotFound()
    except SQLAlchemyError:
        db.rollback()
        raise


def list_tasks(db: Session, principal: Principal) -> List[Tuple[TaskItem, Employee]]:
    """Admin sees every task, an employee only their own; highest priority first, then soonest due."""
    scope = policy.list_scope(principal, policy.TASK)

    query = db.query(TaskItem, Employee).join(Employee, TaskItem.assigned_to_id == Employee.id)
    if scope == policy.OWN:
        query = query.filter(TaskItem.assigned_to_id == principal.id)

    return query.order_by(TaskItem.priority.desc(), TaskItem.due_date.asc(), TaskItem.id.asc()).all()


def get_task(db: Session, principal: Principal, task_id: int) -> TaskItem:
    task = _load(db, task_id)
    policy.authorize(principal, policy.TASK, policy.VIEW, owner_id=task.assigned_to_id)
    return task


def get_task_for_edit(db: Session, principal: Principal, task_id: int) -> TaskItem:
    task = _load(db, task_id)
    policy.authorize(principal, policy.TASK, policy.EDIT, owner_id=task.assigned_to_id)
    return task


def get_task_for_delete(db: Session, principal: Principal, task_id: int) -> TaskItem:
    task = _load(db, task_id)
    policy.authorize(principal, policy.TASK, policy.DELETE, owner_id=task.assigned_to_id)
    return task


def create_task(db: Session, principal: Principal, data: Mapping[str, Any]) -> TaskItem:
    policy.authorize(principal, policy.TASK, policy.CREATE)
    form = bind_form(TaskForm, data)
    assignee = _require_assignee(db, form.assigned_to_id)

    now = datetime.now()
    task = TaskItem(
        title=form.title,
        description=form.description,
        status=form.status,
        priority=form.priority,
        due_date=form.due_date,
        notes=form.notes,
        assigned_to_id=assignee.id,
        created_date=now,
        last_updated=now,
    )
    apply_completion(task, None, now)

    db.add(task)
    _commit(db)
    db.refresh(task)

    logger.info("Task '%s' created and assigned to %s by %s", task.title, assignee.full_name, principal.email)
    return task


def update_task(db: Session, principal: Principal, task_id: int, data: Mapping[str, Any]) -> TaskItem:
    """
    Update a task from submitted form data.

    The persisted row is re-read to authorize against its real assignee and
    to supply every field the principal may not write. ``version`` must match
    the persisted row version, otherwise ConcurrencyConflict.
    """
    task = _load(db, task_id)
    policy.authorize(principal, policy.TASK, policy.EDIT, owner_id=task.assigned_to_id)

    fields = policy.writable_fields(principal, policy.TASK)
    schema = TaskEditForm if "title" in fields else TaskProgressEditForm
    form = bind_form(schema, data)

    if form.version != task.version:
        logger.warning(
            "Stale update of task id=%s by %s (submitted version %s, current %s)",
            task.id, principal.email, form.version, task.version,
        )
        raise ConcurrencyConflict(TASK_CONFLICT_MESSAGE)

    changes = {name: getattr(form, name) for name in fields if name in type(form).model_fields}
    if "assigned_to_id" in changes:
        _require_assignee(db, changes["assigned_to_id"])

    now = datetime.now()
    previous_status = task.status
    for name, value in changes.items():
        setattr(task, name, value)
    task.last_updated = now
    apply_completion(task, previous_status, now)

    _commit(db)
    db.refresh(task)

    logger.info("Task '%s' updated by %s", task.title, principal.email)
    return task


def delete_task(db: Session, principal: Principal, task_id: int) -> str:
    """Delete a task and return its title."""
    task = get_task_for_delete(db, principal, task_id)
    title = task.title

    db.delete(task)
    _commit(db)

    logger.info("Task '%s' deleted by %s", title, principal.email)
    return title


def assignable_employees(db: Session, principal: Principal) -> List[dict]:
    """Dropdown options for the create/edit forms: active employees by first name."""
    policy.authorize(principal, policy.TASK, policy.CREATE)
    employees = (
        db.query(Employee)
        .filter(Employee.is_active.is_(True))
        .order_by(Employee.first_name.asc(), Employee.last_name.asc())
        .all()
    )
    return [
        {"id": e.id, "label": f"{e.full_name} ({e.position or 'N/A'})"}
        for e in employees
    ]
