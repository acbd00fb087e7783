"""
统计汇总测试
"""

import itertools
from datetime import date, datetime

import pytest

from meal_planning.core.exceptions import ValidationError
from meal_planning.models.submission import MealCount, MealSubmissionWithCounts
from meal_planning.models.user import User, UserRole
from meal_planning.services.report_service import (
    GROUP_BY_DATE,
    GROUP_BY_NONE,
    aggregate,
    summarize,
)

from .utils.payloads import MEAL_TYPES, make_payload

STAFF = User(id=1, username="staff", display_name="John Staff", role=UserRole.STAFF)


def build(submission_id, meal_date, counts, status="pending"):
    """构造带人数的提交记录，counts 为 {餐段: (成人, 儿童)}"""
    return MealSubmissionWithCounts(
        id=submission_id,
        user_id=STAFF.id,
        submission_date=datetime(2024, 1, 1, 9, 0),
        meal_date=meal_date,
        status=status,
        user=STAFF,
        counts=[
            MealCount(id=submission_id * 10 + i, submission_id=submission_id,
                      meal_type=meal_type, adult_count=a, child_count=c)
            for i, (meal_type, (a, c)) in enumerate(counts.items())
        ],
    )


@pytest.fixture
def records():
    return [
        build(1, date(2024, 1, 11), {"breakfast": (10, 2), "lunch": (15, 3), "dinner": (12, 1)}),
        build(2, date(2024, 1, 11), {"breakfast": (5, 0), "lunch": (5, 0), "dinner": (5, 5)},
              status="approved"),
        build(3, date(2024, 1, 12), {"breakfast": (1, 1), "lunch": (0, 0), "dinner": (2, 0)},
              status="needs_adjustment"),
    ]


class TestAggregate:
    """aggregate 汇总"""

    def test_totals_without_grouping(self, records):
        bucket = aggregate(records, GROUP_BY_NONE, MEAL_TYPES)

        assert bucket.submission_count == 3
        assert bucket.meals["breakfast"].adults == 16
        assert bucket.meals["breakfast"].children == 3
        assert bucket.meals["lunch"].total == 23
        assert bucket.meals["dinner"].total == 25
        assert bucket.overall.adults == 55
        assert bucket.overall.children == 12
        assert bucket.overall.total == 67

    def test_group_by_date_keys(self, records):
        """按日期分组时键为 ISO 日期字符串"""
        grouped = aggregate(records, GROUP_BY_DATE, MEAL_TYPES)

        assert sorted(grouped) == ["2024-01-11", "2024-01-12"]
        assert grouped["2024-01-11"].submission_count == 2
        assert grouped["2024-01-11"].overall.total == 63
        assert grouped["2024-01-12"].meals["lunch"].total == 0

    def test_order_independent(self, records):
        """任意顺序输入得到相同结果"""
        expected = aggregate(records, GROUP_BY_NONE, MEAL_TYPES)
        expected_by_date = aggregate(records, GROUP_BY_DATE, MEAL_TYPES)
        for perm in itertools.permutations(records):
            assert aggregate(list(perm), GROUP_BY_NONE, MEAL_TYPES) == expected
            assert aggregate(list(perm), GROUP_BY_DATE, MEAL_TYPES) == expected_by_date

    def test_empty_input(self):
        bucket = aggregate([], GROUP_BY_NONE, MEAL_TYPES)
        assert bucket.submission_count == 0
        assert set(bucket.meals) == set(MEAL_TYPES)
        assert bucket.overall.total == 0
        assert aggregate([], GROUP_BY_DATE, MEAL_TYPES) == {}

    def test_unconfigured_meal_type_still_counted(self):
        record = build(1, date(2024, 1, 11), {"supper": (4, 1)})
        bucket = aggregate([record], GROUP_BY_NONE, MEAL_TYPES)
        assert bucket.meals["supper"].total == 5
        assert bucket.meals["breakfast"].total == 0

    def test_invalid_group_by(self, records):
        with pytest.raises(ValidationError):
            aggregate(records, "week", MEAL_TYPES)


class TestSummarize:
    """区间报表"""

    def test_summary(self, records):
        summary = summarize(records, MEAL_TYPES, date(2024, 1, 11), date(2024, 1, 12))

        assert [d.day for d in summary.days] == [date(2024, 1, 11), date(2024, 1, 12)]
        assert summary.day_count == 2
        assert summary.totals.overall.total == 67
        # 67 / 2 = 33.5，四舍五入为 34
        assert summary.avg_per_day == 34
        assert summary.status_counts == {"pending": 1, "approved": 1, "needs_adjustment": 1}

    def test_zero_days_average(self):
        """没有提交时日均为 0"""
        summary = summarize([], MEAL_TYPES, date(2024, 1, 11), date(2024, 1, 12))
        assert summary.day_count == 0
        assert summary.avg_per_day == 0
        assert summary.days == []
        assert summary.status_counts == {"pending": 0, "approved": 0, "needs_adjustment": 0}

    def test_days_sorted_regardless_of_input_order(self, records):
        summary = summarize(list(reversed(records)), MEAL_TYPES)
        assert [d.day for d in summary.days] == [date(2024, 1, 11), date(2024, 1, 12)]

    def test_response_uses_camel_case(self, records):
        data = summarize(records, MEAL_TYPES, date(2024, 1, 11), date(2024, 1, 12)).to_response()
        assert data["avgPerDay"] == 34
        assert data["startDate"] == "2024-01-11"
        assert data["days"][0]["day"] == "2024-01-11"
        assert data["days"][0]["submissionCount"] == 2


class TestReportService:
    """报表服务"""

    @pytest.fixture
    def seeded(self, submission_service, staff_user, other_staff):
        submission_service.create_from_payload(staff_user.id, make_payload("2024-01-11"))
        submission_service.create_from_payload(other_staff.id, make_payload("2024-01-11"))
        submission_service.create_from_payload(staff_user.id, make_payload("2024-01-13"))

    def test_range_report(self, report_service, seeded):
        summary = report_service.range_report("2024-01-11", "2024-01-13")

        assert summary.start_date == date(2024, 1, 11)
        assert summary.end_date == date(2024, 1, 13)
        assert summary.day_count == 2
        # 每次提交合计 10+0 + 11+1 + 12+2 = 36
        assert summary.totals.overall.total == 108
        assert summary.avg_per_day == 54
        assert summary.status_counts["pending"] == 3

    def test_range_report_inverted(self, report_service):
        with pytest.raises(ValidationError):
            report_service.range_report("2024-01-13", "2024-01-11")

    def test_daily_totals(self, report_service, seeded):
        totals = report_service.daily_totals("2024-01-11")
        assert totals.day == date(2024, 1, 11)
        assert totals.submission_count == 2
        assert totals.meals["lunch"].adults == 22
        assert totals.meals["dinner"].children == 4

    def test_daily_totals_defaults_to_tomorrow(self, report_service, seeded):
        totals = report_service.daily_totals()
        assert totals.day == date(2024, 1, 11)
        assert totals.overall.total == 72

    def test_daily_totals_empty_day(self, report_service, seeded):
        totals = report_service.daily_totals("2024-01-12")
        assert totals.submission_count == 0
        assert set(totals.meals) == set(MEAL_TYPES)
