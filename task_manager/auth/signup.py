# task_manager/auth/signup.py

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from task_manager.auth.dependencies import get_optional_principal
from task_manager.auth.principal import Principal
from task_manager.auth.service import register
from task_manager.database import get_db
from task_manager.utils.web import form_data, wants_json, flash, redirect

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


# ---------------------- REGISTER FORM CONTEXT -----------------------
@router.get("/register")
def register_form(principal: Optional[Principal] = Depends(get_optional_principal)):
    if principal is not None:
        return redirect("/")
    return {
        "fields": ["firstName", "lastName", "email", "password", "confirmPassword", "position", "phoneNumber"],
    }


# ---------------------- REGISTER POST -----------------------
@router.post("/register")
def register_post(
    request: Request,
    data: Dict[str, Any] = Depends(form_data),
    db: Session = Depends(get_db),
):
    """
    Self-registration. New accounts are always active employees; the user is
    sent to the login page rather than logged in automatically.
    """
    employee = register(db, data)

    message = "Registration successful! Please login with your credentials."
    if wants_json(request):
        return JSONResponse({"redirect": "/login", "message": message, "id": employee.id}, status_code=201)

    flash(request, message)
    return redirect("/login")
