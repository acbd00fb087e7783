"""
自定义异常类
提供更精确的错误处理和异常信息
"""

from typing import Any, Dict


class BaseApplicationError(Exception):
    """应用基础异常类"""

    default_code = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None
    ):
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class DatabaseError(BaseApplicationError):
    """数据库相关异常"""
    default_code = "DATABASE_ERROR"


class AuthenticationError(BaseApplicationError):
    """认证相关异常"""
    default_code = "AUTHENTICATION_REQUIRED"


class AuthorizationError(BaseApplicationError):
    """授权相关异常"""
    default_code = "PERMISSION_DENIED"


class ValidationError(BaseApplicationError):
    """数据验证异常"""
    default_code = "VALIDATION_ERROR"


class SubmissionWindowError(ValidationError):
    """餐日不在可提交窗口内"""
    default_code = "SUBMISSION_WINDOW_CLOSED"


class NotFoundError(BaseApplicationError):
    """资源不存在异常"""
    default_code = "RESOURCE_NOT_FOUND"


class UserNotFoundError(NotFoundError):
    """用户不存在异常"""
    default_code = "USER_NOT_FOUND"

    def __init__(self, user_id: Any):
        super().__init__("User not found", details={"user_id": user_id})


class SubmissionNotFoundError(NotFoundError):
    """提交记录不存在异常"""
    default_code = "SUBMISSION_NOT_FOUND"

    def __init__(self, submission_id: Any):
        super().__init__("Submission not found", details={"submission_id": submission_id})


class DuplicateSubmissionError(BaseApplicationError):
    """同一用户同一餐日重复提交"""
    default_code = "DUPLICATE_SUBMISSION"


class DuplicateUsernameError(BaseApplicationError):
    """用户名已存在"""
    default_code = "DUPLICATE_RESOURCE"


class ConcurrencyError(BaseApplicationError):
    """并发控制错误"""
    default_code = "CONCURRENCY_ERROR"
