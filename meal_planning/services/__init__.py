"""
Business logic services.
Contains service layer implementations for core business operations.
"""

from .report_service import ReportService, aggregate, summarize
from .submission_service import SubmissionService
from .submission_window import earliest_submittable_date, is_submittable, parse_meal_date
from .user_service import UserService

__all__ = [
    "ReportService",
    "SubmissionService",
    "UserService",
    "aggregate",
    "earliest_submittable_date",
    "is_submittable",
    "parse_meal_date",
    "summarize",
]
