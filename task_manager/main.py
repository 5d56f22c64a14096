# task_manager/main.py
import logging
from contextlib import asynccontextmanager
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from task_manager.config import settings
from task_manager.database import init_db
from task_manager.errors import AccessDenied, NotAuthenticated, TaskManagerError, ValidationError
from task_manager.utils.web import wants_json

from task_manager.auth.auth_router import auth_router
from task_manager.dashboard_router import router as dashboard_router
from task_manager.employees.router import router as employee_router
from task_manager.tasks.router import router as task_router

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

GENERIC_ERROR = "An error occurred. Please try again."


# ------------------- Error handlers -------------------
# Expected domain errors become user-facing messages; anything else is logged
# and answered with the generic message so no internal detail leaks.

async def handle_domain_error(request: Request, exc: TaskManagerError):
    if isinstance(exc, NotAuthenticated) and not wants_json(request):
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        return RedirectResponse(f"/login?returnUrl={quote(target, safe='')}", status_code=303)

    if isinstance(exc, AccessDenied) and not wants_json(request):
        return RedirectResponse("/access-denied", status_code=303)

    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def handle_request_validation(request: Request, exc: RequestValidationError):
    errors = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        errors.setdefault(loc[0] if loc else "__all__", []).append(err.get("msg", "Invalid value."))
    return JSONResponse(ValidationError(errors).to_dict(), status_code=ValidationError.status_code)


async def handle_store_error(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": GENERIC_ERROR}, status_code=500)


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unexpected error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": GENERIC_ERROR}, status_code=500)


def create_app(init_database: bool = True) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if init_database:
            init_db()
        logger.info("Task Manager started (database=%s)", settings.database_url.split("://", 1)[0])
        yield

    app = FastAPI(title="Task Manager", lifespan=lifespan)

    # -------------------- Middleware --------------------
    # the Starlette session only carries flash notices; identity lives in the signed login cookie
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        https_only=settings.cookie_secure,
        same_site="lax",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TaskManagerError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(SQLAlchemyError, handle_store_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    # ------------------- Routers -------------------
    app.include_router(auth_router)
    app.include_router(dashboard_router)
    app.include_router(employee_router)
    app.include_router(task_router)

    return app


app = create_app()
