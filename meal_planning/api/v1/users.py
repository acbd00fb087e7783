"""
用户管理路由模块（仅管理员）
"""

from fastapi import APIRouter, Depends, status

from ..deps import get_user_service
from ...core.error_handler import create_success_response
from ...core.security import require_user_management
from ...models.user import User
from ...schemas.user import UserCreateRequest
from ...services.user_service import UserService

router = APIRouter()


@router.get("")
def list_users(
    admin: User = Depends(require_user_management),
    users: UserService = Depends(get_user_service),
):
    """全部用户（不含密码）"""
    return create_success_response([u.to_response() for u in users.list_users()])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    req: UserCreateRequest,
    admin: User = Depends(require_user_management),
    users: UserService = Depends(get_user_service),
):
    """开通账号，用户名重复时返回 409"""
    user = users.create_user(req)
    return create_success_response(user.to_response(), "User created")
