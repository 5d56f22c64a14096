# task_manager/auth/dependencies.py
import logging
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from task_manager.auth.jwt_handler import decode_jwt
from task_manager.auth.principal import Principal
from task_manager.auth.service import load_principal
from task_manager.config import settings
from task_manager.database import get_db
from task_manager.errors import NotAuthenticated

logger = logging.getLogger(__name__)


def get_optional_principal(request: Request, db: Session = Depends(get_db)) -> Optional[Principal]:
    """
    Read the session cookie and resolve it against the database.
    The database row is the source of truth for role and active flag, not the token.
    Returns None for anonymous requests.
    """
    token = request.cookies.get(settings.session_cookie)
    if not token:
        return None

    payload = decode_jwt(token)
    if not payload:
        logger.debug("Invalid or expired session token")
        return None

    principal = load_principal(db, payload.get("sub"))
    if principal is None:
        logger.debug("Session subject %r no longer resolves to an active employee", payload.get("sub"))
    return principal


def get_current_principal(principal: Optional[Principal] = Depends(get_optional_principal)) -> Principal:
    if principal is None:
        raise NotAuthenticated()
    return principal
