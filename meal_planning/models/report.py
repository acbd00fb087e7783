"""
统计报表数据模型
"""

from datetime import date
from typing import Dict, List, Optional

from pydantic import Field

from .base import BaseEntity


class MealTotals(BaseEntity):
    """人数合计"""
    adults: int = 0
    children: int = 0
    total: int = 0

    def add(self, adults: int, children: int) -> None:
        self.adults += adults
        self.children += children
        self.total += adults + children


class TotalsBucket(BaseEntity):
    """一组提交的按餐段合计"""
    meals: Dict[str, MealTotals] = Field(default_factory=dict)
    overall: MealTotals = Field(default_factory=MealTotals)
    submission_count: int = 0


class DailyTotals(TotalsBucket):
    """单日合计"""
    day: date


class ReportSummary(BaseEntity):
    """区间报表摘要"""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    days: List[DailyTotals] = Field(default_factory=list)
    totals: TotalsBucket = Field(default_factory=TotalsBucket)
    status_counts: Dict[str, int] = Field(default_factory=dict)
    day_count: int = 0
    avg_per_day: int = 0
