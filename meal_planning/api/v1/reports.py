"""
报表路由模块（仅管理员）
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..deps import get_report_service, get_submission_service
from ...core.error_handler import create_success_response
from ...core.security import require_report_access
from ...models.user import User
from ...services.report_service import ReportService
from ...services.submission_service import SubmissionService

router = APIRouter()


@router.get("/range")
def get_range(
    start: str = Query(..., description="开始日期（含）"),
    end: str = Query(..., description="结束日期（含）"),
    admin: User = Depends(require_report_access),
    service: SubmissionService = Depends(get_submission_service),
):
    """日期区间内的全部提交记录"""
    records = service.list_by_range(start, end)
    return create_success_response([r.to_response() for r in records])


@router.get("/summary")
def get_summary(
    start: str = Query(..., description="开始日期（含）"),
    end: str = Query(..., description="结束日期（含）"),
    admin: User = Depends(require_report_access),
    reports: ReportService = Depends(get_report_service),
):
    """日期区间的汇总：每日合计、总合计、状态分布、日均人数"""
    return create_success_response(reports.range_report(start, end).to_response())


@router.get("/daily")
def get_daily(
    date: Optional[str] = Query(None, description="餐日，默认明天"),
    admin: User = Depends(require_report_access),
    reports: ReportService = Depends(get_report_service),
):
    """单日各餐段合计"""
    return create_success_response(reports.daily_totals(date).to_response())
