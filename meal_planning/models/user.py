"""
用户相关数据模型
"""

from enum import Enum
from typing import Dict, FrozenSet

from pydantic import Field

from .base import BaseEntity


class UserRole(str, Enum):
    """用户角色枚举"""
    STAFF = "staff"
    ADMIN = "admin"


class Capability(str, Enum):
    """角色可执行的操作"""
    SUBMIT_COUNTS = "submit_counts"
    REVIEW_SUBMISSIONS = "review_submissions"
    VIEW_ALL_SUBMISSIONS = "view_all_submissions"
    VIEW_REPORTS = "view_reports"
    MANAGE_USERS = "manage_users"


# 每个角色必须出现在表中，新增角色时缺项会在导入时报错
ROLE_CAPABILITIES: Dict[UserRole, FrozenSet[Capability]] = {
    UserRole.STAFF: frozenset({Capability.SUBMIT_COUNTS}),
    UserRole.ADMIN: frozenset(Capability),
}

if set(ROLE_CAPABILITIES) != set(UserRole):
    raise RuntimeError("ROLE_CAPABILITIES must cover every UserRole")


def role_has(role: UserRole, capability: Capability) -> bool:
    """判断角色是否具备某项能力"""
    return capability in ROLE_CAPABILITIES[UserRole(role)]


class UserCreate(BaseEntity):
    """用户创建模型（管理员开通账号时使用）"""
    username: str = Field(..., min_length=1, max_length=100, description="登录名")
    password: str = Field(..., min_length=1, max_length=72, description="明文密码")
    display_name: str = Field(..., min_length=1, max_length=100, description="显示名称")
    role: UserRole = Field(UserRole.STAFF, description="角色")


class User(BaseEntity):
    """用户完整模型

    password_hash 仅在服务内部使用，任何序列化输出都不包含该字段。
    """
    id: int = Field(..., description="用户ID")
    username: str = Field(..., description="登录名")
    display_name: str = Field(..., description="显示名称")
    role: UserRole = Field(..., description="角色")
    password_hash: str = Field("", exclude=True, repr=False)

    def can(self, capability: Capability) -> bool:
        return role_has(self.role, capability)

    @property
    def is_admin(self) -> bool:
        return self.can(Capability.REVIEW_SUBMISSIONS)
