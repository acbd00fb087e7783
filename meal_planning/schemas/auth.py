"""
认证相关的请求/响应模式
"""

from pydantic import BaseModel, Field

from ..models.base import BaseEntity
from ..models.user import User


class LoginRequest(BaseModel):
    """登录请求"""
    username: str = Field(..., min_length=1, description="用户名")
    password: str = Field(..., min_length=1, description="密码")


class LoginResponse(BaseEntity):
    """登录响应"""
    token: str = Field(description="JWT访问令牌")
    token_type: str = Field(default="Bearer", description="令牌类型")
    user: User = Field(description="当前用户")
