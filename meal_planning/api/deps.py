"""
路由依赖
从 app.state 取出在 create_app 中显式构造的服务实例
"""

from fastapi import Request

from ..services.report_service import ReportService
from ..services.submission_service import SubmissionService
from ..services.user_service import UserService


def get_submission_service(request: Request) -> SubmissionService:
    return request.app.state.submission_service


def get_report_service(request: Request) -> ReportService:
    return request.app.state.report_service


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service
