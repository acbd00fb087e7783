"""
用户服务
处理账号开通、列表查询和用户名密码登录
"""

import logging
from typing import List

from ..config.settings import Settings
from ..core.exceptions import AuthenticationError, DuplicateUsernameError, ValidationError
from ..core.security import SecurityManager, hash_password, verify_password
from ..core.store import RecordStore
from ..models.user import User, UserCreate, UserRole

logger = logging.getLogger(__name__)

# 初始化演示账号（仅在 seed_demo_users 开启时创建）
DEMO_USERS = (
    UserCreate(username="admin", password="password", display_name="Admin User", role=UserRole.ADMIN),
    UserCreate(username="staff", password="password", display_name="John Staff", role=UserRole.STAFF),
)


class UserService:
    """用户服务"""

    def __init__(self, store: RecordStore, settings: Settings, security: SecurityManager):
        self.store = store
        self.security = security
        self.bcrypt_rounds = settings.bcrypt_rounds

    def create_user(self, data: UserCreate) -> User:
        """创建用户，用户名重复时抛出 DuplicateUsernameError"""
        username = data.username.strip()
        if not username:
            raise ValidationError("Username is required")
        if self.store.get_user_by_username(username) is not None:
            raise DuplicateUsernameError("Username already exists", details={"username": username})

        user = self.store.create_user(
            username=username,
            password_hash=hash_password(data.password, self.bcrypt_rounds),
            display_name=data.display_name,
            role=data.role,
        )
        logger.info("User %s created with role %s", user.username, user.role.value)
        return user

    def list_users(self) -> List[User]:
        return self.store.list_users()

    def authenticate(self, username: str, password: str) -> User:
        """校验用户名密码"""
        user = self.store.get_user_by_username(username)
        if user is None:
            logger.warning("Login failed for unknown user %s", username)
            raise AuthenticationError("Incorrect username.")
        if not verify_password(password, user.password_hash):
            logger.warning("Login failed for user %s", username)
            raise AuthenticationError("Incorrect password.")
        return user

    def login(self, username: str, password: str) -> dict:
        """登录并签发 JWT"""
        user = self.authenticate(username, password)
        return {
            "token": self.security.create_jwt_token(user.id, {"role": user.role.value}),
            "token_type": "Bearer",
            "user": user,
        }

    def ensure_demo_users(self) -> int:
        """补齐缺失的演示账号，返回新建数量"""
        created = 0
        for demo in DEMO_USERS:
            if self.store.get_user_by_username(demo.username) is None:
                self.create_user(demo)
                created += 1
        return created
