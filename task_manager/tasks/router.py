# task_manager/tasks/router.py

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from task_manager.auth.dependencies import get_current_principal
from task_manager.auth.principal import Principal
from task_manager.database import get_db
from task_manager.employees.models import Employee
from task_manager.schemas.task_schema import TaskOut, default_due_date
from task_manager.tasks import service
from task_manager.tasks.models import TaskItem, TaskStatus, TaskPriority
from task_manager.utils.web import form_data, flash, pop_flash, redirect

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _task_out(db: Session, task: TaskItem) -> dict:
    assignee = db.query(Employee).filter(Employee.id == task.assigned_to_id).first()
    return TaskOut.from_task(task, assignee).model_dump(mode="json")


def _choices():
    return {
        "statuses": [{"value": s.code, "label": s.label} for s in TaskStatus],
        "priorities": [{"value": p.code, "label": p.label} for p in TaskPriority],
    }


# ---------------------------------------
# GET: List tasks (admin = all, employee = own)
# ---------------------------------------
@router.get("")
def task_list(
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rows = service.list_tasks(db, principal)
    return {
        "flash": pop_flash(request),
        "is_admin": principal.is_admin,
        "tasks": [TaskOut.from_task(task, assignee).model_dump(mode="json") for task, assignee in rows],
    }


# ---------------------------------------
# Create (admin only)
# ---------------------------------------
@router.get("/create")
def task_create_form(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return {
        "employees": service.assignable_employees(db, principal),
        "defaults": {
            "status": TaskStatus.NOT_STARTED.code,
            "priority": TaskPriority.MEDIUM.code,
            "dueDate": default_due_date().isoformat(),
        },
        **_choices(),
    }


@router.post("/create")
def task_create(
    request: Request,
    data: Dict[str, Any] = Depends(form_data),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    task = service.create_task(db, principal, data)
    assignee = db.query(Employee).filter(Employee.id == task.assigned_to_id).first()
    flash(request, f"Task '{task.title}' created successfully and assigned to {assignee.full_name}!")
    return redirect("/tasks")


# ---------------------------------------
# Detail
# ---------------------------------------
@router.get("/{task_id}")
def task_view(
    task_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    task = service.get_task(db, principal, task_id)
    return {"flash": pop_flash(request), "task": _task_out(db, task)}


# ---------------------------------------
# Edit (admin: every field, assignee: status + notes)
# ---------------------------------------
@router.get("/{task_id}/edit")
def task_edit_form(
    task_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    task = service.get_task_for_edit(db, principal, task_id)
    context = {
        "is_admin": principal.is_admin,
        "task": _task_out(db, task),
        **_choices(),
    }
    # only admins can reassign tasks
    if principal.is_admin:
        context["employees"] = service.assignable_employees(db, principal)
    return context


@router.post("/{task_id}/edit")
def task_edit(
    task_id: int,
    request: Request,
    data: Dict[str, Any] = Depends(form_data),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    task = service.update_task(db, principal, task_id, data)
    flash(request, f"Task '{task.title}' updated successfully!")
    return redirect("/tasks")


# ---------------------------------------
# Delete (admin only)
# ---------------------------------------
@router.get("/{task_id}/delete")
def task_delete_confirm(
    task_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    task = service.get_task_for_delete(db, principal, task_id)
    return {"task": _task_out(db, task)}


@router.post("/{task_id}/delete")
def task_delete(
    task_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    title = service.delete_task(db, principal, task_id)
    flash(request, f"Task '{title}' deleted successfully!")
    return redirect("/tasks")
