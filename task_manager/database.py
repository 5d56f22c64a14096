# task_manager/database.py
import logging
from datetime import date, datetime, timedelta

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from task_manager.config import settings

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.database_url,
    echo=settings.sql_echo,
    connect_args=_connect_args(settings.database_url),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# primary keys are signed 64-bit integers in every supported store
MAX_ID = 2 ** 63 - 1


def is_valid_id(value) -> bool:
    """False for ids no row can have; binding them would overflow the driver."""
    return isinstance(value, int) and 0 < value <= MAX_ID


# SQLite ignores foreign keys unless asked; the task -> employee restrict relies on them
@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None, seed: bool = None):
    """Create tables and optionally load the demo rows into an empty store."""
    # models must be imported so their tables are registered on Base.metadata
    from task_manager.employees.models import Employee
    from task_manager.tasks.models import TaskItem

    bind = bind or engine
    Base.metadata.create_all(bind=bind)

    if seed is None:
        seed = settings.seed_demo_data
    if not seed:
        return

    db = sessionmaker(bind=bind)()
    try:
        if db.query(Employee).first() is not None:
            return
        _seed_demo_data(db)
        db.commit()
        logger.info("Seeded demo employees and tasks")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def _seed_demo_data(db):
    from task_manager.auth.passwords import hash_password
    from task_manager.employees.models import Employee, Role
    from task_manager.tasks.models import TaskItem, TaskStatus, TaskPriority

    now = datetime.now()
    today = date.today()

    admin = Employee(
        first_name="Admin",
        last_name="User",
        email="admin@taskmanager.com",
        password_hash=hash_password("admin123"),
        role=Role.ADMIN,
        position="System Administrator",
        phone_number="1234567890",
        hire_date=now - timedelta(days=730),
        is_active=True,
    )
    dev = Employee(
        first_name="Sam",
        last_name="Developer",
        email="sam.dev@taskmanager.com",
        password_hash=hash_password("sam12345"),
        role=Role.EMPLOYEE,
        position="Software Developer",
        hire_date=now - timedelta(days=180),
        is_active=True,
    )
    db.add_all([admin, dev])
    db.flush()

    db.add_all([
        TaskItem(
            title="Complete Project Documentation",
            description="Write the user guide and the technical documentation for the task manager.",
            status=TaskStatus.IN_PROGRESS,
            priority=TaskPriority.HIGH,
            due_date=today + timedelta(days=5),
            created_date=now - timedelta(days=3),
            last_updated=now - timedelta(days=1),
            assigned_to_id=dev.id,
        ),
        TaskItem(
            title="Database Optimization",
            description="Optimize database queries and add proper indexes.",
            status=TaskStatus.NOT_STARTED,
            priority=TaskPriority.MEDIUM,
            due_date=today + timedelta(days=10),
            created_date=now - timedelta(days=2),
            last_updated=now - timedelta(days=2),
            assigned_to_id=dev.id,
        ),
    ])
