# task_manager/auth/me.py
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from task_manager.auth.dependencies import get_current_principal
from task_manager.auth.principal import Principal

router = APIRouter(tags=["auth"])


@router.get("/me", response_model=Dict[str, Any])
def read_me(principal: Principal = Depends(get_current_principal)):
    """
    Return the current principal.
    """
    return principal.model_dump()


@router.get("/access-denied")
def access_denied():
    return JSONResponse({"error": "Access denied. You do not have permission to view this page."}, status_code=403)
