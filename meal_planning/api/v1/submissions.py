"""
餐数提交路由模块
员工提交餐数，管理员审核
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status

from ..deps import get_submission_service
from ...core.error_handler import create_success_response
from ...core.exceptions import AuthorizationError
from ...core.security import get_current_user, require_admin
from ...models.user import Capability, User
from ...schemas.submission import StatusUpdateRequest, SubmissionWindowResponse
from ...services.submission_service import SubmissionService

router = APIRouter()


def _dump(records):
    return [r.to_response() for r in records]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_submission(
    payload: Dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    """
    创建餐数提交

    请求体：{mealDate, notes?, <餐段>: {adultCount, childCount, specialRequirements?}}
    """
    if not user.can(Capability.SUBMIT_COUNTS):
        raise AuthorizationError("Your role cannot submit meal counts")
    submission = service.create_from_payload(user.id, payload)
    return create_success_response(submission.to_response(), "Submission created")


@router.get("")
def list_submissions(
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    """管理员返回全部提交，员工只返回自己的提交"""
    return create_success_response(_dump(service.list_visible_to(user)))


@router.get("/window")
def get_submission_window(
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    """当前可提交的最早餐日和需要填写的餐段"""
    window = SubmissionWindowResponse(**service.submission_window())
    return create_success_response(window.to_response())


@router.get("/date/{meal_date}")
def list_submissions_by_date(
    meal_date: str,
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    """按餐日查询提交"""
    return create_success_response(_dump(service.list_visible_to(user, meal_date)))


@router.get("/{submission_id}")
def get_submission(
    submission_id: int,
    user: User = Depends(get_current_user),
    service: SubmissionService = Depends(get_submission_service),
):
    """查询单条提交，员工只能查看自己的"""
    return create_success_response(service.get_visible_to(user, submission_id).to_response())


@router.patch("/{submission_id}/status")
def update_submission_status(
    submission_id: int,
    req: StatusUpdateRequest,
    admin: User = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
):
    """修改审核状态（仅管理员）"""
    submission = service.transition_status(submission_id, req.status, actor=admin)
    return create_success_response(submission.to_response(), "Status updated")


@router.get("/{submission_id}/history")
def get_submission_history(
    submission_id: int,
    admin: User = Depends(require_admin),
    service: SubmissionService = Depends(get_submission_service),
):
    """提交的创建和状态变更记录（仅管理员）"""
    return create_success_response(_dump(service.status_history(submission_id)))
