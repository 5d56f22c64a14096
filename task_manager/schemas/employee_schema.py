# task_manager/schemas/employee_schema.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from task_manager.employees.models import Role
from task_manager.schemas.base import FormModel


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()


def _checked_email(value: str) -> str:
    value = normalize_email(value)
    if len(value) > 100:
        raise ValueError("Email cannot exceed 100 characters.")
    return value


class ProfileFields(FormModel):
    """Fields an employee may change on their own record."""

    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    position: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=15)
    # blank on edit keeps the current password
    password: Optional[str] = Field(None, min_length=6, max_length=100)


class ProfileForm(ProfileFields):
    version: int


class EmployeeFields(ProfileFields):
    email: EmailStr
    role: str = Role.EMPLOYEE
    hire_date: Optional[datetime] = None
    is_active: bool = True

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v):
        return _checked_email(v)

    @field_validator("role", mode="before")
    @classmethod
    def _parse_role(cls, v):
        role = Role.parse(v)
        if role is None:
            raise ValueError("Role must be Admin or Employee.")
        return role


class EmployeeEditForm(EmployeeFields):
    # an omitted role or active flag must not demote or reactivate anyone
    role: str
    is_active: bool
    version: int


class EmployeeForm(EmployeeFields):
    password: str = Field(..., min_length=6, max_length=100)


class EmployeeOut(BaseModel):
    id: int
    first_name: str
    last_name: str
    full_name: str
    email: str
    position: Optional[str] = None
    phone_number: Optional[str] = None
    role: str
    hire_date: datetime
    is_active: bool
    version: int
    assigned_task_count: Optional[int] = None

    model_config = {"from_attributes": True}


class RegisterForm(FormModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    confirm_password: str
    position: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=15)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v):
        return _checked_email(v)

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("The password and confirmation password do not match.")
        return self


class LoginForm(FormModel):
    email: str
    password: str
    remember_me: bool = False
    return_url: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v):
        return normalize_email(v)
