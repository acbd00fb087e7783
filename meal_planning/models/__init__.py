"""
数据模型
"""

from .user import Capability, User, UserCreate, UserRole, role_has
from .submission import (
    AuditLog,
    MealCount,
    MealCountInput,
    MealSubmission,
    MealSubmissionWithCounts,
    SubmissionStatus,
)
from .report import DailyTotals, MealTotals, ReportSummary, TotalsBucket

__all__ = [
    "AuditLog",
    "Capability",
    "DailyTotals",
    "MealCount",
    "MealCountInput",
    "MealSubmission",
    "MealSubmissionWithCounts",
    "MealTotals",
    "ReportSummary",
    "SubmissionStatus",
    "TotalsBucket",
    "User",
    "UserCreate",
    "UserRole",
    "role_has",
]
