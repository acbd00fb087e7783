"""
统计报表服务
将提交记录中的餐段人数汇总为按餐段、按日期的合计

合计只做加法，与提交记录的顺序无关；按日期分组时以餐日的 ISO 字符串为键。
"""

from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..core.exceptions import ValidationError
from ..models.report import DailyTotals, MealTotals, ReportSummary, TotalsBucket
from ..models.submission import MealSubmissionWithCounts, SubmissionStatus
from .submission_window import parse_meal_date

GROUP_BY_NONE = "none"
GROUP_BY_DATE = "date"


def _new_bucket(meal_types: Sequence[str]) -> TotalsBucket:
    return TotalsBucket(meals={m: MealTotals() for m in meal_types})


def _fold(bucket: TotalsBucket, submission: MealSubmissionWithCounts) -> None:
    bucket.submission_count += 1
    for count in submission.counts:
        bucket.meals.setdefault(count.meal_type, MealTotals()).add(
            count.adult_count, count.child_count)
        bucket.overall.add(count.adult_count, count.child_count)


def aggregate(
    submissions: Iterable[MealSubmissionWithCounts],
    group_by: str = GROUP_BY_NONE,
    meal_types: Optional[Sequence[str]] = None,
):
    """
    汇总提交记录的人数

    Args:
        submissions: 提交记录
        group_by: "none" 返回单个 TotalsBucket；"date" 返回 {ISO日期: TotalsBucket}
        meal_types: 预置的餐段，保证没有提交的餐段也以 0 出现

    Returns:
        TotalsBucket 或 Dict[str, TotalsBucket]
    """
    meal_types = list(meal_types or [])

    if group_by == GROUP_BY_NONE:
        bucket = _new_bucket(meal_types)
        for submission in submissions:
            _fold(bucket, submission)
        return bucket

    if group_by == GROUP_BY_DATE:
        buckets: Dict[str, TotalsBucket] = {}
        for submission in submissions:
            key = submission.meal_date.isoformat()
            if key not in buckets:
                buckets[key] = _new_bucket(meal_types)
            _fold(buckets[key], submission)
        return buckets

    raise ValidationError("group_by must be 'none' or 'date'", details={"group_by": group_by})


def _round_half_up(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


def summarize(
    submissions: Sequence[MealSubmissionWithCounts],
    meal_types: Optional[Sequence[str]] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> ReportSummary:
    """生成区间报表：每日合计（按日期排序）、总合计、状态分布和日均人数"""
    by_date = aggregate(submissions, GROUP_BY_DATE, meal_types)
    days = [
        DailyTotals(day=date.fromisoformat(key), **bucket.model_dump())
        for key, bucket in sorted(by_date.items())
    ]
    totals = aggregate(submissions, GROUP_BY_NONE, meal_types)

    status_counts = {s.value: 0 for s in SubmissionStatus}
    for submission in submissions:
        status_counts[SubmissionStatus(submission.status).value] += 1

    day_count = len(days)
    avg_per_day = _round_half_up(totals.overall.total, day_count) if day_count else 0

    return ReportSummary(
        start_date=start_date,
        end_date=end_date,
        days=days,
        totals=totals,
        status_counts=status_counts,
        day_count=day_count,
        avg_per_day=avg_per_day,
    )


class ReportService:
    """报表服务"""

    def __init__(self, submission_service):
        self.submissions = submission_service

    @property
    def meal_types(self) -> List[str]:
        return self.submissions.meal_types

    def range_report(self, start: Any, end: Any) -> ReportSummary:
        """日期区间（含首尾）的汇总报表"""
        records = self.submissions.list_by_range(start, end)
        return summarize(
            records,
            self.meal_types,
            start_date=parse_meal_date(start),
            end_date=parse_meal_date(end),
        )

    def daily_totals(self, day: Any = None) -> DailyTotals:
        """单日各餐段合计，默认统计明天"""
        if day is None:
            target = self.submissions.today() + timedelta(days=1)
        else:
            target = parse_meal_date(day)
        bucket = aggregate(self.submissions.list_by_date(target), GROUP_BY_NONE, self.meal_types)
        return DailyTotals(day=target, **bucket.model_dump())
