import inspect
import time
from datetime import date, datetime, timedelta
from functools import partial

import anyio
import httpx
import pytest
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from task_manager.auth import service as auth_service
from task_manager.employees.models import Employee, Role
from task_manager.tasks import service as task_service
from task_manager.tasks.models import TaskItem, TaskStatus

from conftest import make_task

XHR = {"X-Requested-With": "XMLHttpRequest"}


def session_cookie_header(resp):
    return next(h for h in resp.headers.get_list("set-cookie") if h.startswith("access_token="))


# ----------------------------
# login / logout
# ----------------------------
def test_login_sets_session_cookie(make_client, alice):
    client = make_client()
    resp = client.post("/login", data={"email": "alice@example.com", "password": "alice123"}, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/"

    cookie = session_cookie_header(resp)
    assert "httponly" in cookie.lower()
    # browser-session cookie unless "remember me" is ticked
    assert "max-age" not in cookie.lower()

    me = client.get("/me").json()
    assert me["email"] == "alice@example.com"
    assert me["role"] == Role.EMPLOYEE
    assert me["position"] == "Developer"


def test_remember_me_persists_for_thirty_days(make_client, alice):
    client = make_client()
    resp = client.post(
        "/login",
        data={"email": "alice@example.com", "password": "alice123", "rememberMe": "true"},
        follow_redirects=False,
    )
    assert f"Max-Age={30 * 24 * 3600}" in session_cookie_header(resp)


def test_login_honours_local_return_url_only(make_client, alice):
    client = make_client()
    creds = {"email": "alice@example.com", "password": "alice123"}
    resp = client.post("/login", data={**creds, "returnUrl": "/tasks"}, follow_redirects=False)
    assert resp.headers["location"] == "/tasks"
    resp = client.post("/login", data={**creds, "returnUrl": "https://evil.example/"}, follow_redirects=False)
    assert resp.headers["location"] == "/"


@pytest.mark.parametrize("email, password", [
    ("alice@example.com", "wrong-password"),
    ("ghost@example.com", "alice123"),
])
def test_bad_credentials_get_one_generic_answer(make_client, alice, email, password):
    resp = make_client().post("/login", data={"email": email, "password": password}, follow_redirects=False)
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid email or password."}
    assert not any(h.startswith("access_token=") for h in resp.headers.get_list("set-cookie"))


def test_login_page_redirects_when_signed_in(make_client, alice):
    client = make_client("alice@example.com", "alice123")
    resp = client.get("/login", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/"


def test_logout_is_idempotent(make_client, alice):
    client = make_client("alice@example.com", "alice123")
    for _ in range(2):
        resp = client.post("/logout", follow_redirects=False)
        assert resp.status_code == 303
        assert resp.headers["location"] == "/"
        assert "Max-Age=0" in session_cookie_header(resp)

    assert client.get("/me", headers=XHR).status_code == 401
    assert client.get("/").json()["flash"]["message"] == "You have been logged out successfully."


def test_deactivated_employee_loses_session(make_client, db, alice):
    client = make_client("alice@example.com", "alice123")
    alice.is_active = False
    db.commit()
    assert client.get("/me", headers=XHR).status_code == 401


def test_form_handlers_run_off_the_event_loop(app):
    posts = [r for r in app.routes if isinstance(r, APIRoute) and "POST" in r.methods]
    assert posts
    assert not [r.path for r in posts if inspect.iscoroutinefunction(r.endpoint)]


def test_slow_login_does_not_hold_up_other_requests(app, alice, monkeypatch):
    def slow_verify(password_hash, password):
        time.sleep(0.5)
        return True

    monkeypatch.setattr(auth_service, "verify_password", slow_verify)
    finished = []

    async def send(client, method, url, **kwargs):
        await client.request(method, url, **kwargs)
        finished.append(url)

    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            async with anyio.create_task_group() as tg:
                tg.start_soon(partial(send, client, "POST", "/login",
                                      data={"email": "alice@example.com", "password": "alice123"}))
                await anyio.sleep(0.1)
                tg.start_soon(send, client, "GET", "/access-denied")

    anyio.run(scenario)
    assert finished == ["/access-denied", "/login"]


# ----------------------------
# register
# ----------------------------
def test_register_then_login(make_client, db):
    client = make_client()
    resp = client.post("/register", data={
        "firstName": "Nora",
        "lastName": "New",
        "email": "nora@example.com",
        "password": "nora1234",
        "confirmPassword": "nora1234",
    })
    # followed to the login page, which shows the notice
    assert resp.json()["flash"]["message"] == "Registration successful! Please login with your credentials."

    nora = db.query(Employee).filter(Employee.email == "nora@example.com").one()
    assert nora.role == Role.EMPLOYEE

    resp = client.post("/login", data={"email": "nora@example.com", "password": "nora1234"}, follow_redirects=False)
    assert resp.status_code == 303


def test_register_duplicate_email(make_client, alice):
    resp = make_client().post("/register", data={
        "firstName": "Al",
        "lastName": "Ice",
        "email": "alice@example.com",
        "password": "alice999",
        "confirmPassword": "alice999",
    }, headers=XHR)
    assert resp.status_code == 409
    assert "email" in resp.json()["errors"]


def test_register_validation_errors(make_client):
    resp = make_client().post("/register", data={"firstName": "Solo"}, headers=XHR)
    assert resp.status_code == 422
    errors = resp.json()["errors"]
    assert {"lastName", "email", "password"} <= set(errors)


# ----------------------------
# access control on routes
# ----------------------------
def test_anonymous_is_sent_to_login(make_client):
    resp = make_client().get("/tasks", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login?returnUrl=%2Ftasks"


def test_anonymous_xhr_gets_401(make_client):
    resp = make_client().get("/tasks", headers=XHR)
    assert resp.status_code == 401


def test_employee_is_sent_to_access_denied(make_client, alice):
    client = make_client("alice@example.com", "alice123")
    resp = client.get("/employees", follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/access-denied"

    followed = client.get("/employees")
    assert followed.status_code == 403


def test_employee_cannot_open_someone_elses_task(make_client, alice, bob, db):
    task = make_task(db, bob)
    client = make_client("alice@example.com", "alice123")
    assert client.get(f"/tasks/{task.id}", headers=XHR).status_code == 403
    assert client.post(f"/tasks/{task.id}/delete", headers=XHR).status_code == 403
    assert client.get("/tasks/create", headers=XHR).status_code == 403


def test_missing_task_is_404(make_client, admin):
    client = make_client("admin@example.com", "admin123")
    resp = client.get("/tasks/999")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Task not found."}


@pytest.mark.parametrize("url, message", [
    ("/tasks/99999999999999999999", "Task not found."),
    ("/tasks/99999999999999999999/edit", "Task not found."),
    ("/employees/99999999999999999999", "Employee not found."),
    ("/employees/99999999999999999999/delete", "Employee not found."),
])
def test_ids_beyond_the_store_range_are_404(make_client, admin, url, message):
    client = make_client("admin@example.com", "admin123")
    resp = client.get(url)
    assert resp.status_code == 404
    assert resp.json() == {"error": message}


# ----------------------------
# dashboard
# ----------------------------
def test_dashboard_anonymous(make_client):
    assert make_client().get("/").json() == {"authenticated": False, "flash": None}


def test_dashboard_counts(make_client, db, admin, alice, bob):
    yesterday = date.today() - timedelta(days=1)
    make_task(db, alice, "late", due_date=yesterday)
    make_task(db, alice, "done late", due_date=yesterday, status=TaskStatus.COMPLETED, completed_date=datetime.now())
    make_task(db, bob, "pending")

    stats = make_client("admin@example.com", "admin123").get("/").json()["stats"]
    assert stats == {
        "total_employees": 3,
        "total_tasks": 3,
        "completed_tasks": 1,
        "pending_tasks": 2,
        "overdue_tasks": 1,
    }

    stats = make_client("alice@example.com", "alice123").get("/").json()["stats"]
    assert stats == {
        "my_tasks": 2,
        "my_completed_tasks": 1,
        "my_pending_tasks": 1,
        "my_overdue_tasks": 1,
    }


# ----------------------------
# tasks through forms
# ----------------------------
def test_admin_task_lifecycle(make_client, db, admin, alice):
    client = make_client("admin@example.com", "admin123")

    form = client.get("/tasks/create").json()
    assert [e["label"] for e in form["employees"]] == ["Ada Admin (System Administrator)", "Alice Smith (Developer)"]
    assert form["defaults"]["dueDate"] == (date.today() + timedelta(days=7)).isoformat()

    resp = client.post("/tasks/create", data={
        "title": "Ship it",
        "description": "Cut the release",
        "priority": "Critical",
        "dueDate": form["defaults"]["dueDate"],
        "assignedToId": str(alice.id),
    })
    listing = resp.json()
    assert listing["flash"]["message"] == "Task 'Ship it' created successfully and assigned to Alice Smith!"
    task = listing["tasks"][0]
    assert task["priority"] == "Critical"
    assert task["assigned_to_name"] == "Alice Smith"
    assert task["version"] == 1

    resp = client.post(f"/tasks/{task['id']}/edit", data={
        "title": "Ship it now",
        "description": "Cut the release",
        "status": "Completed",
        "priority": "Critical",
        "dueDate": task["due_date"],
        "assignedToId": str(alice.id),
        "version": "1",
    })
    assert resp.json()["flash"]["message"] == "Task 'Ship it now' updated successfully!"

    detail = client.get(f"/tasks/{task['id']}").json()["task"]
    assert detail["status"] == "Completed"
    assert detail["completed_date"] is not None
    assert detail["progress_percentage"] == 100

    resp = client.post(f"/tasks/{task['id']}/delete")
    assert resp.json()["flash"]["message"] == "Task 'Ship it now' deleted successfully!"
    assert db.query(TaskItem).count() == 0


def test_assignee_updates_status_through_form(make_client, db, alice):
    task = make_task(db, alice, "Mine")
    client = make_client("alice@example.com", "alice123")

    edit = client.get(f"/tasks/{task.id}/edit").json()
    assert edit["is_admin"] is False
    assert "employees" not in edit

    resp = client.post(f"/tasks/{task.id}/edit", data={
        "title": "Renamed by assignee",
        "status": "InProgress",
        "notes": "started",
        "version": str(edit["task"]["version"]),
    }, follow_redirects=False)
    assert resp.status_code == 303

    db.expire_all()
    task = db.get(TaskItem, task.id)
    assert task.title == "Mine"
    assert task.status == TaskStatus.IN_PROGRESS
    assert task.notes == "started"


def test_stale_form_gets_conflict(make_client, db, admin, alice):
    task = make_task(db, alice)
    client = make_client("admin@example.com", "admin123")
    data = {
        "title": "Edited",
        "description": "d",
        "status": "NotStarted",
        "priority": "Low",
        "dueDate": task.due_date.isoformat(),
        "assignedToId": str(alice.id),
        "version": "1",
    }
    assert client.post(f"/tasks/{task.id}/edit", data=data, follow_redirects=False).status_code == 303

    resp = client.post(f"/tasks/{task.id}/edit", data={**data, "title": "Edited again"})
    assert resp.status_code == 409
    assert "modified by another user" in resp.json()["error"]


def test_create_task_validation_error(make_client, admin):
    client = make_client("admin@example.com", "admin123")
    resp = client.post("/tasks/create", data={"title": "No assignee"})
    assert resp.status_code == 422
    assert "assignedToId" in resp.json()["errors"]


# ----------------------------
# employees through forms
# ----------------------------
def test_delete_employee_with_tasks_is_refused(make_client, db, admin, alice):
    make_task(db, alice)
    client = make_client("admin@example.com", "admin123")

    confirm = client.get(f"/employees/{alice.id}/delete").json()
    assert confirm["can_delete"] is False
    assert confirm["employee"]["assigned_task_count"] == 1

    resp = client.post(f"/employees/{alice.id}/delete")
    assert resp.status_code == 409
    assert resp.json()["error"].startswith("Cannot delete Alice Smith")


def test_employee_edits_own_profile(make_client, db, alice):
    client = make_client("alice@example.com", "alice123")
    resp = client.post(f"/employees/{alice.id}/edit", data={
        "firstName": "Alicia",
        "lastName": "Smith",
        "role": "Admin",
        "version": "1",
    }, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == f"/employees/{alice.id}"

    me = client.get("/me").json()
    assert me["full_name"] == "Alicia Smith"
    assert me["role"] == Role.EMPLOYEE


def test_admin_lists_employees_with_task_counts(make_client, db, admin, alice):
    make_task(db, alice)
    employees = make_client("admin@example.com", "admin123").get("/employees").json()["employees"]
    assert [(e["full_name"], e["assigned_task_count"]) for e in employees] == [("Ada Admin", 0), ("Alice Smith", 1)]
    assert all("password_hash" not in e for e in employees)


# ----------------------------
# unexpected failures
# ----------------------------
def test_store_errors_are_not_leaked(make_client, monkeypatch, admin):
    client = make_client("admin@example.com", "admin123")

    def broken(*args, **kwargs):
        raise SQLAlchemyError("connection refused on 10.0.0.5")

    monkeypatch.setattr(task_service, "list_tasks", broken)
    resp = client.get("/tasks")
    assert resp.status_code == 500
    assert resp.json() == {"error": "An error occurred. Please try again."}


def test_unexpected_errors_are_not_leaked(app, monkeypatch, admin):
    client = TestClient(app, raise_server_exceptions=False)
    client.post("/login", data={"email": "admin@example.com", "password": "admin123"}, follow_redirects=False)

    def broken(*args, **kwargs):
        raise RuntimeError("secret internals")

    monkeypatch.setattr(task_service, "list_tasks", broken)
    resp = client.get("/tasks")
    assert resp.status_code == 500
    assert "secret internals" not in resp.text
