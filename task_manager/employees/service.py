# task_manager/employees/service.py
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from task_manager import policy
from task_manager.auth.passwords import hash_password
from task_manager.auth.principal import Principal
from task_manager.database import is_valid_id
from task_manager.employees.models import Employee
from task_manager.errors import (
    ConcurrencyConflict,
    DuplicateEmail,
    HasAssignedTasks,
    NotFound,
    ValidationError,
)
from task_manager.schemas.base import bind_form
from task_manager.schemas.employee_schema import EmployeeForm, EmployeeEditForm, ProfileForm
from task_manager.tasks.models import TaskItem

logger = logging.getLogger(__name__)

EMPLOYEE_CONFLICT_MESSAGE = "The employee was modified by another user. Please reload and try again."


def _load(db: Session, employee_id: int) -> Employee:
    if not is_valid_id(employee_id):
        raise NotFound("Employee not found.")
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise NotFound("Employee not found.")
    return employee


def _email_taken(db: Session, email: str, exclude_id: int = None) -> bool:
    query = db.query(Employee.id).filter(Employee.email == email)
    if exclude_id is not None:
        query = query.filter(Employee.id != exclude_id)
    return query.first() is not None


def find_tasks_by_assignee(db: Session, employee_id: int) -> List[TaskItem]:
    return (
        db.query(TaskItem)
        .filter(TaskItem.assigned_to_id == employee_id)
        .order_by(TaskItem.priority.desc(), TaskItem.due_date.asc(), TaskItem.id.asc())
        .all()
    )


def count_tasks_by_assignee(db: Session, employee_id: int) -> int:
    return db.query(func.count(TaskItem.id)).filter(TaskItem.assigned_to_id == employee_id).scalar() or 0


def list_employees(db: Session, principal: Principal) -> List[Tuple[Employee, int]]:
    """Active employees first, then by first name. Each row carries its task count."""
    policy.list_scope(principal, policy.EMPLOYEE)

    counts: Dict[int, int] = dict(
        db.query(TaskItem.assigned_to_id, func.count(TaskItem.id))
        .group_by(TaskItem.assigned_to_id)
        .all()
    )
    employees = (
        db.query(Employee)
        .order_by(Employee.is_active.desc(), Employee.first_name.asc(), Employee.id.asc())
        .all()
    )
    return [(e, counts.get(e.id, 0)) for e in employees]


def get_employee(db: Session, principal: Principal, employee_id: int) -> Employee:
    employee = _load(db, employee_id)
    policy.authorize(principal, policy.EMPLOYEE, policy.VIEW, owner_id=employee.id)
    return employee


def get_employee_for_edit(db: Session, principal: Principal, employee_id: int) -> Employee:
    employee = _load(db, employee_id)
    policy.authorize(principal, policy.EMPLOYEE, policy.EDIT, owner_id=employee.id)
    return employee


def get_employee_for_delete(db: Session, principal: Principal, employee_id: int) -> Employee:
    employee = _load(db, employee_id)
    policy.authorize(principal, policy.EMPLOYEE, policy.DELETE, owner_id=employee.id)
    return employee


def create_employee(db: Session, principal: Principal, data: Mapping[str, Any]) -> Employee:
    policy.authorize(principal, policy.EMPLOYEE, policy.CREATE)
    form = bind_form(EmployeeForm, data)

    if _email_taken(db, form.email):
        raise DuplicateEmail()

    employee = Employee(
        first_name=form.first_name,
        last_name=form.last_name,
        email=form.email,
        password_hash=hash_password(form.password),
        position=form.position,
        phone_number=form.phone_number,
        role=form.role,
        hire_date=form.hire_date or datetime.now(),
        is_active=form.is_active,
    )

    try:
        db.add(employee)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateEmail()
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(employee)
    logger.info("New employee created: %s by %s", employee.email, principal.email)
    return employee


def update_employee(db: Session, principal: Principal, employee_id: int, data: Mapping[str, Any]) -> Employee:
    """
    Admins edit every field. An employee editing their own record may only
    change the profile fields; email, role, hire date and active flag keep
    their persisted values. A blank password keeps the current one.
    """
    employee = _load(db, employee_id)
    policy.authorize(principal, policy.EMPLOYEE, policy.EDIT, owner_id=employee.id)

    fields = policy.writable_fields(principal, policy.EMPLOYEE)
    schema = EmployeeEditForm if "email" in fields else ProfileForm
    form = bind_form(schema, data)

    if form.version != employee.version:
        logger.warning(
            "Stale update of employee id=%s by %s (submitted version %s, current %s)",
            employee.id, principal.email, form.version, employee.version,
        )
        raise ConcurrencyConflict(EMPLOYEE_CONFLICT_MESSAGE)

    changes = {name: getattr(form, name) for name in fields if name in type(form).model_fields}

    if "email" in changes and _email_taken(db, changes["email"], exclude_id=employee.id):
        raise DuplicateEmail()

    if principal.id == employee.id and changes.get("role", employee.role) != employee.role:
        raise ValidationError({"role": ["You cannot change your own role."]})
    if principal.id == employee.id and changes.get("is_active", True) is False:
        raise ValidationError({"isActive": ["You cannot deactivate your own account."]})

    password = changes.pop("password", None)
    if password:
        employee.password_hash = hash_password(password)
    if "hire_date" in changes and changes["hire_date"] is None:
        changes.pop("hire_date")

    for name, value in changes.items():
        setattr(employee, name, value)

    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise ConcurrencyConflict(EMPLOYEE_CONFLICT_MESSAGE)
    except IntegrityError:
        db.rollback()
        raise DuplicateEmail()
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(employee)
    logger.info("Employee updated: %s by %s", employee.email, principal.email)
    return employee


def delete_employee(db: Session, principal: Principal, employee_id: int) -> str:
    """Remove an employee and return their full name. Refused while any task is still assigned to them."""
    employee = get_employee_for_delete(db, principal, employee_id)

    if employee.id == principal.id:
        raise ValidationError({"id": ["You cannot delete your own account."]}, message="You cannot delete your own account.")

    if count_tasks_by_assignee(db, employee.id) > 0:
        raise HasAssignedTasks(
            f"Cannot delete {employee.full_name} because they have assigned tasks. "
            "Please reassign or complete their tasks first."
        )

    full_name, email = employee.full_name, employee.email
    try:
        db.delete(employee)
        db.commit()
    except IntegrityError:
        # a task was assigned between the check and the delete
        db.rollback()
        raise HasAssignedTasks(
            f"Cannot delete {full_name} because they have assigned tasks. "
            "Please reassign or complete their tasks first."
        )
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info("Employee deleted: %s by %s", email, principal.email)
    return full_name
