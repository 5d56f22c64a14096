# task_manager/auth/service.py
import logging
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from task_manager.auth.passwords import hash_password, verify_password, burn_password_check
from task_manager.auth.principal import Principal
from task_manager.database import is_valid_id
from task_manager.employees.models import Employee, Role
from task_manager.errors import DuplicateEmail, InvalidCredentials
from task_manager.schemas.base import bind_form
from task_manager.schemas.employee_schema import RegisterForm, normalize_email

logger = logging.getLogger(__name__)


def authenticate(db: Session, email: str, password: str) -> Principal:
    """
    Verify credentials for an active employee.

    Emails are compared after strip + lower-case. The same InvalidCredentials
    is raised for an unknown email, an inactive account and a wrong password.
    """
    email = normalize_email(email)
    employee = (
        db.query(Employee)
        .filter(Employee.email == email, Employee.is_active.is_(True))
        .first()
    )

    if employee is None:
        burn_password_check(password)
        logger.warning("Failed login for unknown or inactive account")
        raise InvalidCredentials()

    if not verify_password(employee.password_hash, password):
        logger.warning("Failed login for employee id=%s", employee.id)
        raise InvalidCredentials()

    logger.info("User %s logged in successfully", employee.email)
    return Principal.from_employee(employee)


def register(db: Session, data: Mapping[str, Any]) -> Employee:
    """Self-registration. Always creates an active Employee hired now."""
    form = bind_form(RegisterForm, data)

    if db.query(Employee).filter(Employee.email == form.email).first() is not None:
        raise DuplicateEmail("An account with this email already exists.")

    employee = Employee(
        first_name=form.first_name,
        last_name=form.last_name,
        email=form.email,
        password_hash=hash_password(form.password),
        position=form.position,
        phone_number=form.phone_number,
        role=Role.EMPLOYEE,
        hire_date=datetime.now(),
        is_active=True,
    )

    try:
        db.add(employee)
        db.commit()
    except IntegrityError:
        # lost a race with another registration for the same address
        db.rollback()
        raise DuplicateEmail("An account with this email already exists.")
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(employee)
    logger.info("New employee %s registered", employee.email)
    return employee


def load_principal(db: Session, employee_id: Any):
    """Resolve a session subject to a Principal; None when the account is gone or inactive."""
    try:
        uid = int(employee_id)
    except (TypeError, ValueError):
        return None

    if not is_valid_id(uid):
        return None
    employee = db.query(Employee).filter(Employee.id == uid).first()
    if employee is None or not employee.is_active:
        return None
    return Principal.from_employee(employee)
