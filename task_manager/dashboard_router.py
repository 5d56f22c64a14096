# task_manager/dashboard_router.py

import logging
from datetime import date
from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from task_manager.auth.dependencies import get_optional_principal
from task_manager.auth.principal import Principal
from task_manager.database import get_db
from task_manager.employees.models import Employee
from task_manager.tasks.models import TaskItem, TaskStatus
from task_manager.utils.web import pop_flash

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])


def _task_counts(db: Session, assignee_id: Optional[int] = None) -> Dict[str, int]:
    def count(*criteria):
        query = db.query(func.count(TaskItem.id))
        if assignee_id is not None:
            query = query.filter(TaskItem.assigned_to_id == assignee_id)
        return query.filter(*criteria).scalar() or 0

    open_task = TaskItem.status != TaskStatus.COMPLETED
    return {
        "total": count(),
        "completed": count(TaskItem.status == TaskStatus.COMPLETED),
        "pending": count(open_task),
        "overdue": count(open_task, TaskItem.due_date < date.today()),
    }


def admin_stats(db: Session) -> Dict[str, int]:
    counts = _task_counts(db)
    return {
        "total_employees": db.query(func.count(Employee.id)).filter(Employee.is_active.is_(True)).scalar() or 0,
        "total_tasks": counts["total"],
        "completed_tasks": counts["completed"],
        "pending_tasks": counts["pending"],
        "overdue_tasks": counts["overdue"],
    }


def employee_stats(db: Session, employee_id: int) -> Dict[str, int]:
    counts = _task_counts(db, assignee_id=employee_id)
    return {
        "my_tasks": counts["total"],
        "my_completed_tasks": counts["completed"],
        "my_pending_tasks": counts["pending"],
        "my_overdue_tasks": counts["overdue"],
    }


# -----------------------------
# Dashboard: admin gets global counts, an employee only their own
# -----------------------------
@router.get("/")
def dashboard(
    request: Request,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal),
):
    flash = pop_flash(request)
    if principal is None:
        return {"authenticated": False, "flash": flash}

    stats = admin_stats(db) if principal.is_admin else employee_stats(db, principal.id)
    return {
        "authenticated": True,
        "flash": flash,
        "user": principal.model_dump(),
        "stats": stats,
    }
