# task_manager/auth/login.py

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from task_manager.auth.dependencies import get_optional_principal
from task_manager.auth.jwt_handler import create_access_token, session_lifetime
from task_manager.auth.principal import Principal
from task_manager.auth.service import authenticate
from task_manager.config import settings
from task_manager.database import get_db
from task_manager.schemas.base import bind_form
from task_manager.schemas.employee_schema import LoginForm
from task_manager.utils.web import form_data, wants_json, is_local_url, pop_flash, redirect

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


# GET login page context
@router.get("/login")
def login_form(
    request: Request,
    returnUrl: Optional[str] = None,
    principal: Optional[Principal] = Depends(get_optional_principal),
):
    # already logged in
    if principal is not None:
        return redirect("/")
    return {"returnUrl": returnUrl if is_local_url(returnUrl) else None, "flash": pop_flash(request)}


# POST login
@router.post("/login")
def login_post(
    request: Request,
    data: Dict[str, Any] = Depends(form_data),
    db: Session = Depends(get_db),
):
    form = bind_form(LoginForm, data)

    # raises InvalidCredentials; the handler answers without saying which part was wrong
    principal = authenticate(db, form.email, form.password)

    lifetime = session_lifetime(form.remember_me)
    token = create_access_token(
        {
            "sub": str(principal.id),
            "role": principal.role,
            "name": principal.full_name,
            "email": principal.email,
            "position": principal.position,
        },
        lifetime,
    )

    redirect_url = form.return_url if is_local_url(form.return_url) else "/"

    if wants_json(request):
        resp = JSONResponse({"redirect": redirect_url, "role": principal.role, "name": principal.full_name})
    else:
        resp = redirect(redirect_url)

    # only "remember me" gets a persistent cookie; otherwise it dies with the browser
    resp.set_cookie(
        key=settings.session_cookie,
        value=token,
        max_age=int(lifetime.total_seconds()) if form.remember_me else None,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )
    return resp
