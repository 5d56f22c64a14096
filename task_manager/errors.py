# task_manager/errors.py
"""
Domain errors raised by the workflows.

Each error carries the message shown to the user and the HTTP status the
handlers in main.py answer with. Nothing in here may contain internal detail.
"""
from typing import Dict, List, Optional


class TaskManagerError(Exception):
    status_code = 400
    message = "An error occurred. Please try again."

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None):
        self.message = message or self.message
        self.field = field
        super().__init__(self.message)

    def to_dict(self) -> Dict:
        data = {"error": self.message}
        if self.field:
            data["errors"] = {self.field: [self.message]}
        return data


class ValidationError(TaskManagerError):
    status_code = 422
    message = "Please correct the errors and try again."

    def __init__(self, errors: Optional[Dict[str, List[str]]] = None, message: Optional[str] = None):
        super().__init__(message)
        self.errors = errors or {}

    def to_dict(self) -> Dict:
        return {"error": self.message, "errors": self.errors}


class DuplicateEmail(TaskManagerError):
    status_code = 409
    message = "An employee with this email already exists."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, field="email")


class AssigneeNotFound(TaskManagerError):
    status_code = 422
    message = "Please assign this task to an existing employee."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, field="assignedToId")


class NotFound(TaskManagerError):
    status_code = 404
    message = "Not found."


class AccessDenied(TaskManagerError):
    status_code = 403
    message = "You do not have permission to access this resource."


class NotAuthenticated(TaskManagerError):
    status_code = 401
    message = "Please login."


class ConcurrencyConflict(TaskManagerError):
    status_code = 409
    message = "The record was modified by another user. Please reload and try again."


class HasAssignedTasks(TaskManagerError):
    status_code = 409
    message = "Cannot delete this employee because they have assigned tasks."


class InvalidCredentials(TaskManagerError):
    status_code = 401
    message = "Invalid email or password."
