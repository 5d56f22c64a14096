from datetime import date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from task_manager.auth.passwords import hash_password
from task_manager.auth.principal import Principal
from task_manager.database import Base, get_db
from task_manager.employees.models import Employee, Role
from task_manager.main import create_app
from task_manager.tasks.models import TaskItem, TaskPriority, TaskStatus


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def make_employee(db, first_name, last_name, email, password="secret123", role=Role.EMPLOYEE, **kwargs):
    employee = Employee(
        first_name=first_name,
        last_name=last_name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        hire_date=kwargs.pop("hire_date", datetime(2024, 1, 15)),
        is_active=kwargs.pop("is_active", True),
        **kwargs,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


def make_task(db, assignee, title="Write report", **kwargs):
    now = datetime.now()
    task = TaskItem(
        title=title,
        description=kwargs.pop("description", "Quarterly numbers"),
        status=kwargs.pop("status", TaskStatus.NOT_STARTED),
        priority=kwargs.pop("priority", TaskPriority.MEDIUM),
        due_date=kwargs.pop("due_date", date.today() + timedelta(days=7)),
        created_date=kwargs.pop("created_date", now),
        last_updated=kwargs.pop("last_updated", now),
        assigned_to_id=assignee.id,
        **kwargs,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


@pytest.fixture
def admin(db):
    return make_employee(db, "Ada", "Admin", "admin@example.com", password="admin123", role=Role.ADMIN,
                         position="System Administrator")


@pytest.fixture
def alice(db):
    return make_employee(db, "Alice", "Smith", "alice@example.com", password="alice123", position="Developer")


@pytest.fixture
def bob(db):
    return make_employee(db, "Bob", "Jones", "bob@example.com", password="bob12345")


@pytest.fixture
def admin_principal(admin):
    return Principal.from_employee(admin)


@pytest.fixture
def alice_principal(alice):
    return Principal.from_employee(alice)


@pytest.fixture
def bob_principal(bob):
    return Principal.from_employee(bob)


@pytest.fixture
def app(session_factory):
    app = create_app(init_database=False)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def make_client(app):
    """Build a separate client (own cookie jar) per user."""

    def _make(email=None, password=None, remember_me=False):
        client = TestClient(app)
        if email is not None:
            data = {"email": email, "password": password}
            if remember_me:
                data["rememberMe"] = "true"
            resp = client.post("/login", data=data, follow_redirects=False)
            assert resp.status_code == 303, resp.text
        return client

    return _make
