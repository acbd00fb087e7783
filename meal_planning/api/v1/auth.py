"""
用户认证路由模块
用户名密码登录，签发 JWT
"""

from fastapi import APIRouter, Depends

from ..deps import get_user_service
from ...core.error_handler import create_success_response
from ...core.security import get_current_user
from ...models.user import User
from ...schemas.auth import LoginRequest, LoginResponse
from ...services.user_service import UserService

router = APIRouter()


@router.post("/login")
def login(req: LoginRequest, users: UserService = Depends(get_user_service)):
    """
    用户名密码登录

    Returns:
        data: {token, tokenType, user}，user 不包含密码哈希
    """
    result = users.login(req.username, req.password)
    return create_success_response(LoginResponse(**result).to_response(), "Login successful")


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    """当前登录用户"""
    return create_success_response(user.to_response())
