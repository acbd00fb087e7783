"""
安全相关功能
密码哈希、JWT 签发校验，以及 FastAPI 的认证/授权依赖
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .exceptions import AuthenticationError, AuthorizationError
from ..config.settings import Settings
from ..models.user import Capability, User

# bcrypt 只使用密码的前 72 个字节
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 12) -> str:
    """生成带盐的密码哈希"""
    if not password:
        raise ValueError("Password cannot be empty")
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """校验明文密码与哈希是否匹配"""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # 存储的哈希格式不正确
        return False


class SecurityManager:
    """JWT 管理器"""

    def __init__(self, settings: Settings):
        self.secret = settings.jwt_secret_key
        self.algorithm = settings.jwt_algorithm
        self.expire_hours = settings.jwt_expire_hours

    def create_jwt_token(self, user_id: int, additional_claims: Dict[str, Any] = None) -> str:
        """创建JWT token"""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "exp": now + timedelta(hours=self.expire_hours),
            "iat": now,
        }
        if additional_claims:
            payload.update(additional_claims)
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_jwt_token(self, token: str) -> Dict[str, Any]:
        """解码JWT token"""
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {e}")

    def get_user_id_from_token(self, token: str) -> int:
        """从token中提取用户ID"""
        payload = self.decode_jwt_token(token)
        try:
            return int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError("Token missing subject")


bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    """从 Authorization header 中解析当前用户"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authenticated")

    security: SecurityManager = request.app.state.security
    user_id = security.get_user_id_from_token(credentials.credentials)

    user = request.app.state.store.get_user(user_id)
    if user is None:
        raise AuthenticationError("User no longer exists")
    return user


def require_capability(capability: Capability):
    """生成校验角色能力的依赖"""

    def dependency(user: User = Depends(get_current_user)) -> User:
        if not user.can(capability):
            raise AuthorizationError(
                "Admin permission required",
                details={"required": capability.value, "role": user.role.value},
            )
        return user

    return dependency


require_admin = require_capability(Capability.REVIEW_SUBMISSIONS)
require_report_access = require_capability(Capability.VIEW_REPORTS)
require_user_management = require_capability(Capability.MANAGE_USERS)
