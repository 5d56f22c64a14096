# task_manager/auth/auth_router.py
from fastapi import APIRouter
from task_manager.auth.login import router as login_router
from task_manager.auth.signup import router as signup_router
from task_manager.auth.logout import router as logout_router
from task_manager.auth.me import router as me_router

auth_router = APIRouter()

auth_router.include_router(login_router)
auth_router.include_router(signup_router)
auth_router.include_router(logout_router)
auth_router.include_router(me_router)
