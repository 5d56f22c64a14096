# task_manager/policy.py
"""
Who may do what.

Every workflow asks this module before it reads or writes anything. Rules are
kept in one table keyed by (resource, action); each entry says what an admin
gets and what a plain employee gets:

    ALL    -> allowed on every record
    OWN    -> allowed only when the record belongs to the principal
    NONE   -> never allowed

Field-level rules live in WRITABLE_FIELDS: fields missing from a role's set
are server-authoritative for that role and always keep their persisted value.
"""
import logging
from typing import Dict, FrozenSet, Optional, Tuple

from task_manager.auth.principal import Principal
from task_manager.employees.models import Role
from task_manager.errors import AccessDenied

logger = logging.getLogger(__name__)

# resources
EMPLOYEE = "employee"
TASK = "task"

# actions
LIST = "list"
VIEW = "view"
EDIT = "edit"
CREATE = "create"
DELETE = "delete"

# scopes
ALL = "all"
OWN = "own"
NONE = "none"


POLICY: Dict[Tuple[str, str], Dict[str, str]] = {
    (EMPLOYEE, LIST):   {Role.ADMIN: ALL, Role.EMPLOYEE: NONE},
    (EMPLOYEE, VIEW):   {Role.ADMIN: ALL, Role.EMPLOYEE: OWN},
    (EMPLOYEE, EDIT):   {Role.ADMIN: ALL, Role.EMPLOYEE: OWN},
    (EMPLOYEE, CREATE): {Role.ADMIN: ALL, Role.EMPLOYEE: NONE},
    (EMPLOYEE, DELETE): {Role.ADMIN: ALL, Role.EMPLOYEE: NONE},
    # employees list their own tasks; the query is scoped by list_scope()
    (TASK, LIST):       {Role.ADMIN: ALL, Role.EMPLOYEE: OWN},
    (TASK, VIEW):       {Role.ADMIN: ALL, Role.EMPLOYEE: OWN},
    (TASK, EDIT):       {Role.ADMIN: ALL, Role.EMPLOYEE: OWN},
    (TASK, CREATE):     {Role.ADMIN: ALL, Role.EMPLOYEE: NONE},
    (TASK, DELETE):     {Role.ADMIN: ALL, Role.EMPLOYEE: NONE},
}


WRITABLE_FIELDS: Dict[Tuple[str, str], FrozenSet[str]] = {
    (TASK, Role.ADMIN): frozenset({
        "title", "description", "status", "priority", "due_date", "assigned_to_id", "notes",
    }),
    (TASK, Role.EMPLOYEE): frozenset({"status", "notes"}),
    (EMPLOYEE, Role.ADMIN): frozenset({
        "first_name", "last_name", "email", "password", "position", "phone_number",
        "role", "hire_date", "is_active",
    }),
    (EMPLOYEE, Role.EMPLOYEE): frozenset({
        "first_name", "last_name", "password", "position", "phone_number",
    }),
}


def scope_for(principal: Principal, resource: str, action: str) -> str:
    rule = POLICY.get((resource, action))
    if rule is None:
        return NONE
    return rule.get(principal.role, NONE)


def is_allowed(principal: Optional[Principal], resource: str, action: str, owner_id: Optional[int] = None) -> bool:
    """
    Pure check of (principal, resource, action) against POLICY.

    ``owner_id`` is the employee the record belongs to: the employee id itself
    for employee records, the assignee for tasks. Leave it None for actions
    that are not about a single record (list, create).
    """
    if principal is None:
        return False
    scope = scope_for(principal, resource, action)
    if scope == ALL:
        return True
    if scope == OWN:
        # list has no single record; the caller narrows the query instead
        if owner_id is None:
            return action == LIST
        return owner_id == principal.id
    return False


def authorize(principal: Optional[Principal], resource: str, action: str, owner_id: Optional[int] = None) -> None:
    if not is_allowed(principal, resource, action, owner_id):
        logger.warning(
            "Access denied: principal=%s role=%s action=%s resource=%s owner=%s",
            getattr(principal, "id", None), getattr(principal, "role", None), action, resource, owner_id,
        )
        raise AccessDenied()


def list_scope(principal: Principal, resource: str) -> str:
    """ALL or OWN; raises AccessDenied when the role may not list at all."""
    authorize(principal, resource, LIST)
    return scope_for(principal, resource, LIST)


def writable_fields(principal: Principal, resource: str) -> FrozenSet[str]:
    return WRITABLE_FIELDS.get((resource, principal.role), frozenset())
