"""
用户相关的请求/响应模式
"""

from ..models.user import UserCreate


class UserCreateRequest(UserCreate):
    """开通账号请求，字段接受 camelCase 或 snake_case"""
    pass
