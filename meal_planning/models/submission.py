"""
餐数提交相关数据模型
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from .base import BaseEntity
from .user import User


class SubmissionStatus(str, Enum):
    """提交状态枚举，任意状态之间均可互相切换"""
    PENDING = "pending"                    # 待审核
    APPROVED = "approved"                  # 已通过
    NEEDS_ADJUSTMENT = "needs_adjustment"  # 需调整


# meal_counts 表的人数列为 32 位 INTEGER
MAX_HEADCOUNT = 2_147_483_647


class MealCountInput(BaseEntity):
    """单个餐段的人数输入"""
    adult_count: int = Field(..., ge=0, le=MAX_HEADCOUNT, strict=True, description="成人数量")
    child_count: int = Field(..., ge=0, le=MAX_HEADCOUNT, strict=True, description="儿童数量")
    special_requirements: Optional[str] = Field(None, max_length=1000, description="特殊饮食需求")

    @field_validator("special_requirements")
    @classmethod
    def blank_to_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class MealCount(MealCountInput):
    """已保存的餐段人数"""
    id: int = Field(..., description="记录ID")
    submission_id: int = Field(..., description="所属提交ID")
    meal_type: str = Field(..., description="餐段")

    @property
    def total(self) -> int:
        return self.adult_count + self.child_count


class MealSubmission(BaseEntity):
    """餐数提交"""
    id: int = Field(..., description="提交ID")
    user_id: int = Field(..., description="提交人ID")
    submission_date: datetime = Field(..., description="提交时间")
    meal_date: date = Field(..., description="用餐日期")
    status: SubmissionStatus = Field(SubmissionStatus.PENDING, description="审核状态")
    notes: Optional[str] = Field(None, description="备注")


class MealSubmissionWithCounts(MealSubmission):
    """带提交人和各餐段人数的完整提交记录"""
    user: User
    counts: List[MealCount] = Field(default_factory=list)

    def count_for(self, meal_type: str) -> Optional[MealCount]:
        for count in self.counts:
            if count.meal_type == meal_type:
                return count
        return None


class AuditLog(BaseEntity):
    """操作日志"""
    log_id: int
    user_id: Optional[int] = None
    actor_id: Optional[int] = None
    action: str
    ref_id: Optional[int] = None
    detail: dict = Field(default_factory=dict)
    created_at: Optional[datetime] = None
