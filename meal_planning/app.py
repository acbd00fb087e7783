"""
餐数计划后端服务 - 主应用入口
提供员工餐数提交与管理员审核的后端API服务

主要功能模块：
- 用户名密码登录（JWT）
- 餐数提交与提交窗口校验
- 管理员审核与状态变更
- 按日期汇总的统计报表
- 用户管理

技术栈：FastAPI + DuckDB + JWT认证
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import api_router
from .config.settings import Settings, settings as default_settings
from .core.database import DatabaseManager
from .core.error_handler import (
    application_error_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.exceptions import BaseApplicationError
from .core.logger import configure_logging
from .core.security import SecurityManager
from .core.store import DuckDBRecordStore
from .services.report_service import ReportService
from .services.submission_service import Clock, SubmissionService
from .services.user_service import UserService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    app.state.db.ping()
    if app.state.settings.seed_demo_users:
        created = app.state.user_service.ensure_demo_users()
        if created:
            logger.info("Seeded %d demo users", created)

    yield

    app.state.db.close()


def create_app(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> FastAPI:
    """
    创建FastAPI应用

    Args:
        settings: 应用配置，默认读取环境变量
        clock: 服务端时钟，测试时可注入固定时间
    """
    settings = settings or default_settings
    configure_logging(settings.debug)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="Meal count submission and approval API",
        debug=settings.debug,
        lifespan=lifespan
    )

    # 显式构造存储和服务，挂在 app.state 上供依赖注入使用
    db = DatabaseManager(settings.database_url)
    store = DuckDBRecordStore(db)
    security = SecurityManager(settings)
    submission_service = SubmissionService(store, settings, clock=clock)

    app.state.settings = settings
    app.state.db = db
    app.state.store = store
    app.state.security = security
    app.state.submission_service = submission_service
    app.state.report_service = ReportService(submission_service)
    app.state.user_service = UserService(store, settings, security)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册异常处理器
    app.add_exception_handler(BaseApplicationError, application_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # 注册路由
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    def health_check():
        try:
            db.ping()
            return {
                "status": "healthy",
                "version": settings.api_version,
                "database": "connected"
            }
        except BaseApplicationError as e:
            return {
                "status": "unhealthy",
                "version": settings.api_version,
                "database": f"error: {e.message}"
            }

    @app.get("/")
    def root():
        return {
            "name": settings.api_title,
            "version": settings.api_version,
        }

    return app
