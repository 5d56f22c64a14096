# task_manager/tasks/models.py

import enum
from datetime import date, datetime

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey
from sqlalchemy.types import TypeDecorator
from task_manager.database import Base

# Employee must be imported so the foreign key target table is registered
from task_manager.employees.models import Employee  # noqa: F401


class _LabelledIntEnum(enum.IntEnum):
    """Int-valued enum that parses from members, ints, digit strings or names."""

    @property
    def label(self) -> str:
        return self._labels()[self]

    @property
    def code(self) -> str:
        """CamelCase name, e.g. InProgress."""
        return "".join(part.capitalize() for part in self.name.split("_"))

    @classmethod
    def _labels(cls):
        return {}

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        text = str(value).strip()
        if text.lstrip("-").isdigit():
            return cls(int(text))
        key = text.replace(" ", "").replace("_", "").replace("-", "").lower()
        for member in cls:
            if member.name.replace("_", "").lower() == key:
                return member
        raise ValueError(f"{value!r} is not a valid {cls.__name__}")


class TaskStatus(_LabelledIntEnum):
    NOT_STARTED = 0
    IN_PROGRESS = 1
    UNDER_REVIEW = 2
    COMPLETED = 3

    @classmethod
    def _labels(cls):
        return {
            cls.NOT_STARTED: "Not Started",
            cls.IN_PROGRESS: "In Progress",
            cls.UNDER_REVIEW: "Under Review",
            cls.COMPLETED: "Completed",
        }

    @property
    def progress(self) -> int:
        return {
            TaskStatus.NOT_STARTED: 0,
            TaskStatus.IN_PROGRESS: 50,
            TaskStatus.UNDER_REVIEW: 75,
            TaskStatus.COMPLETED: 100,
        }[self]


class TaskPriority(_LabelledIntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    @classmethod
    def _labels(cls):
        return {
            cls.LOW: "Low",
            cls.MEDIUM: "Medium",
            cls.HIGH: "High",
            cls.CRITICAL: "Critical",
        }


class IntEnumType(TypeDecorator):
    """Stores an IntEnum as its integer value so ORDER BY follows enum order."""

    impl = Integer
    cache_ok = True

    def __init__(self, enum_class, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.enum_class = enum_class

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(self.enum_class.parse(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self.enum_class(value)


class TaskItem(Base):
    __tablename__ = "task_items"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(IntEnumType(TaskStatus), nullable=False, default=TaskStatus.NOT_STARTED)
    priority = Column(IntEnumType(TaskPriority), nullable=False, default=TaskPriority.MEDIUM)
    due_date = Column(Date, nullable=False)
    created_date = Column(DateTime, nullable=False, default=datetime.now)
    last_updated = Column(DateTime, nullable=False, default=datetime.now)
    completed_date = Column(DateTime, nullable=True)
    notes = Column(String(500), nullable=True)

    # no cascade: an employee with tasks cannot be deleted
    assigned_to_id = Column(Integer, ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False, index=True)

    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def is_overdue(self) -> bool:
        return self.due_date is not None and self.due_date < date.today() and not self.is_completed

    @property
    def progress_percentage(self) -> int:
        return TaskStatus.parse(self.status).progress

    def __repr__(self):
        return f"<TaskItem id={self.id} title={self.title}>"
