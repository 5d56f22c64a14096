# task_manager/auth/logout.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from task_manager.auth.dependencies import get_optional_principal
from task_manager.auth.principal import Principal
from task_manager.config import settings
from task_manager.utils.web import flash, redirect

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/logout")
def logout_post(request: Request, principal: Optional[Principal] = Depends(get_optional_principal)):
    """Drop the session cookie and the server-side session. Safe to call when already logged out."""
    request.session.clear()
    flash(request, "You have been logged out successfully.", level="info")

    if principal is not None:
        logger.info("User %s logged out", principal.email)

    resp = redirect("/")
    resp.delete_cookie(settings.session_cookie, path="/")
    return resp
