"""
餐数提交相关的请求/响应模式
"""

from datetime import date
from typing import List

from pydantic import BaseModel, Field

from ..models.base import BaseEntity


class StatusUpdateRequest(BaseModel):
    """审核状态更新请求，取值在服务层校验"""
    status: str = Field(..., description="pending / approved / needs_adjustment")


class SubmissionWindowResponse(BaseEntity):
    """提交窗口提示"""
    now: str = Field(..., description="服务端当前时间")
    earliest_date: date = Field(..., description="最早可提交的餐日")
    cutoff_hour: int = Field(..., description="截止小时")
    meal_types: List[str] = Field(..., description="需要填写的餐段")
