# task_manager/auth/principal.py
from typing import Optional

from pydantic import BaseModel, ConfigDict

from task_manager.employees.models import Employee, Role


class Principal(BaseModel):
    """The authenticated identity passed explicitly into every workflow call."""

    model_config = ConfigDict(frozen=True)

    id: int
    full_name: str
    email: str
    role: str
    position: Optional[str] = "N/A"

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_employee(cls, employee: Employee) -> "Principal":
        return cls(
            id=employee.id,
            full_name=employee.full_name,
            email=employee.email,
            role=employee.role,
            position=employee.position or "N/A",
        )
