"""
统一错误处理模块
提供标准化的错误响应格式和异常处理器

主要功能：
- 统一的错误响应格式
- 业务异常到HTTP状态码的映射
- 未知异常的日志记录
"""

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


class ErrorResponse:
    """标准错误响应格式"""

    def __init__(self, error_code: str, message: str,
                 details: Optional[Dict[str, Any]] = None,
                 http_status: int = 400):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        self.http_status = http_status

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "success": False,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }

    def to_json_response(self) -> JSONResponse:
        """转换为FastAPI JSONResponse"""
        return JSONResponse(
            status_code=self.http_status,
            content=self.to_dict()
        )


class ErrorHandler:
    """全局错误处理器"""

    # 错误代码到HTTP状态码的映射
    ERROR_CODE_STATUS_MAP = {
        "VALIDATION_ERROR": 400,
        "AUTHENTICATION_REQUIRED": 401,
        "PERMISSION_DENIED": 403,
        "RESOURCE_NOT_FOUND": 404,
        "DUPLICATE_RESOURCE": 409,
        "CONCURRENCY_ERROR": 409,
        "DATABASE_ERROR": 500,
        "INTERNAL_ERROR": 500,

        # 提交相关错误
        "SUBMISSION_WINDOW_CLOSED": 400,
        "SUBMISSION_NOT_FOUND": 404,
        "DUPLICATE_SUBMISSION": 409,

        # 用户相关错误
        "USER_NOT_FOUND": 404,
    }

    @classmethod
    def handle_application_error(cls, error: BaseApplicationError) -> ErrorResponse:
        """处理应用业务异常"""
        http_status = cls.ERROR_CODE_STATUS_MAP.get(error.error_code, 400)
        if http_status >= 500:
            logger.error("%s: %s", error.error_code, error.message)

        return ErrorResponse(
            error_code=error.error_code,
            message=error.message,
            details=error.details,
            http_status=http_status
        )

    @classmethod
    def handle_http_exception(cls, error: HTTPException) -> ErrorResponse:
        """处理FastAPI HTTP异常"""
        return ErrorResponse(
            error_code="HTTP_ERROR",
            message=str(error.detail),
            details={"status_code": error.status_code},
            http_status=error.status_code
        )

    @classmethod
    def handle_validation_error(cls, error: RequestValidationError) -> ErrorResponse:
        """处理请求参数校验错误"""
        errors = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
            for e in error.errors()
        ]
        return ErrorResponse(
            error_code="VALIDATION_ERROR",
            message="Request validation failed",
            details={"validation_errors": errors},
            http_status=422
        )

    @classmethod
    def handle_unknown_error(cls, request: Request, error: Exception) -> ErrorResponse:
        """处理未知异常"""
        error_details = {
            "type": type(error).__name__,
            "message": str(error),
            "path": request.url.path,
            "traceback": traceback.format_exc()
        }
        logger.exception("Unhandled error on %s", request.url.path)
        cls._log_system_error(request, error_details)

        return ErrorResponse(
            error_code="INTERNAL_ERROR",
            message="Internal server error",
            details={"error_type": type(error).__name__},
            http_status=500
        )

    @classmethod
    def _log_system_error(cls, request: Request, error_details: Dict[str, Any]):
        """记录系统错误到数据库日志表"""
        store = getattr(request.app.state, "store", None)
        if store is None:
            return
        try:
            store.add_log("system_error", detail=error_details)
        except BaseApplicationError:
            # 数据库日志写入失败时只保留进程日志
            logger.error("Failed to write system error log: %s", error_details["message"])


async def application_error_handler(request: Request, exc: BaseApplicationError) -> JSONResponse:
    """应用异常处理器"""
    return ErrorHandler.handle_application_error(exc).to_json_response()


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """HTTP异常处理器"""
    return ErrorHandler.handle_http_exception(exc).to_json_response()


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """请求校验异常处理器"""
    return ErrorHandler.handle_validation_error(exc).to_json_response()


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """通用异常处理器"""
    return ErrorHandler.handle_unknown_error(request, exc).to_json_response()


def create_success_response(data: Any = None, message: str = "OK") -> Dict[str, Any]:
    """创建标准成功响应"""
    response = {
        "success": True,
        "message": message
    }

    if data is not None:
        response["data"] = data

    return response
