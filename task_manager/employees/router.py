# task_manager/employees/router.py
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from task_manager import policy
from task_manager.auth.dependencies import get_current_principal
from task_manager.auth.principal import Principal
from task_manager.database import get_db
from task_manager.employees import service
from task_manager.employees.models import Employee, Role
from task_manager.schemas.employee_schema import EmployeeOut
from task_manager.schemas.task_schema import TaskOut
from task_manager.utils.web import form_data, flash, pop_flash, redirect

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employees", tags=["employees"])


def _employee_out(employee: Employee, task_count: int = None) -> dict:
    out = EmployeeOut.model_validate(employee)
    if task_count is not None:
        out = out.model_copy(update={"assigned_task_count": task_count})
    return out.model_dump(mode="json")


# ----------------- Employee pages / CRUD -----------------

# List employees (admin)
@router.get("")
def list_employees(
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    rows = service.list_employees(db, principal)
    return {
        "flash": pop_flash(request),
        "employees": [_employee_out(e, count) for e, count in rows],
    }


# Create form context (admin)
@router.get("/create")
def create_form(principal: Principal = Depends(get_current_principal)):
    policy.authorize(principal, policy.EMPLOYEE, policy.CREATE)
    return {"roles": list(Role.ALL), "defaults": {"role": Role.EMPLOYEE, "isActive": True}}


# Create employee (POST, admin)
@router.post("/create")
def create_employee(
    request: Request,
    data: Dict[str, Any] = Depends(form_data),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    employee = service.create_employee(db, principal, data)
    flash(request, f"Employee {employee.full_name} created successfully!")
    return redirect("/employees")


# Details (admin, or the employee themselves)
@router.get("/{emp_id}")
def employee_detail(
    emp_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    employee = service.get_employee(db, principal, emp_id)
    tasks = service.find_tasks_by_assignee(db, employee.id)
    return {
        "flash": pop_flash(request),
        "employee": _employee_out(employee, len(tasks)),
        "tasks": [TaskOut.from_task(t, employee).model_dump(mode="json") for t in tasks],
    }


# Edit form context
@router.get("/{emp_id}/edit")
def edit_employee_view(
    emp_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    employee = service.get_employee_for_edit(db, principal, emp_id)
    return {
        "is_admin": principal.is_admin,
        "employee": _employee_out(employee),
        "roles": list(Role.ALL),
    }


# Update employee (POST)
@router.post("/{emp_id}/edit")
def update_employee(
    emp_id: int,
    request: Request,
    data: Dict[str, Any] = Depends(form_data),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    employee = service.update_employee(db, principal, emp_id, data)
    flash(request, f"Employee {employee.full_name} updated successfully!")
    if principal.is_admin:
        return redirect("/employees")
    return redirect(f"/employees/{employee.id}")


# Delete confirmation (admin)
@router.get("/{emp_id}/delete")
def delete_employee_view(
    emp_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    employee = service.get_employee_for_delete(db, principal, emp_id)
    count = service.count_tasks_by_assignee(db, employee.id)
    return {"employee": _employee_out(employee, count), "can_delete": count == 0}


# Delete (POST, admin)
@router.post("/{emp_id}/delete")
def delete_employee(
    emp_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    full_name = service.delete_employee(db, principal, emp_id)
    flash(request, f"Employee {full_name} deleted successfully!")
    return redirect("/employees")
