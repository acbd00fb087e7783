"""
API routes and endpoints.
"""

from fastapi import APIRouter
from .v1 import auth, reports, submissions, users

api_router = APIRouter()

# 包含所有v1路由
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(submissions.router, prefix="/meal-submissions", tags=["meal-submissions"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
