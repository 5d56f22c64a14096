# task_manager/employees/models.py
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Boolean
from task_manager.database import Base


class Role:
    ADMIN = "Admin"
    EMPLOYEE = "Employee"

    ALL = (ADMIN, EMPLOYEE)

    @classmethod
    def parse(cls, value):
        """Accept 'admin', 'Admin', ' ADMIN ' etc. Returns None for unknown roles."""
        if value is None:
            return None
        text = str(value).strip().lower()
        for role in cls.ALL:
            if role.lower() == text:
                return role
        return None


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)

    position = Column(String(100), nullable=True)
    phone_number = Column(String(15), nullable=True)
    role = Column(String(20), nullable=False, default=Role.EMPLOYEE)
    hire_date = Column(DateTime, nullable=False, default=datetime.now)
    is_active = Column(Boolean, nullable=False, default=True)

    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Employee id={self.id} name={self.full_name} email={self.email}>"
