"""
餐数提交服务
提供餐数提交的创建、审核状态变更和查询

主要功能：
- 提交创建：校验日期窗口和各餐段人数，提交与人数原子写入
- 状态变更：pending / approved / needs_adjustment 之间任意切换
- 查询：按用户、按日期、按日期区间、全部

业务规则：
- 新提交的状态固定为 pending，提交时间取服务端时间
- 每个配置的餐段必须且只能有一条人数记录
- 默认每人每个餐日只能提交一次（可通过配置关闭）
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional
from zoneinfo import ZoneInfo

from pydantic import ValidationError as PydanticValidationError

from ..config.settings import Settings
from ..core.exceptions import (
    AuthorizationError,
    SubmissionNotFoundError,
    SubmissionWindowError,
    UserNotFoundError,
    ValidationError,
)
from ..core.store import RecordStore
from ..models.submission import (
    AuditLog,
    MealCountInput,
    MealSubmissionWithCounts,
    SubmissionStatus,
)
from ..models.user import Capability, User
from .submission_window import earliest_submittable_date, is_submittable, parse_meal_date

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# 请求体中除餐段以外的字段
PAYLOAD_META_FIELDS = ("mealDate", "notes")


def make_clock(tz_name: str) -> Clock:
    """按配置的时区生成服务端时钟"""
    tz = ZoneInfo(tz_name)
    return lambda: datetime.now(tz)


class SubmissionService:
    """餐数提交服务"""

    def __init__(self, store: RecordStore, settings: Settings, clock: Optional[Clock] = None):
        self.store = store
        self.meal_types: List[str] = list(settings.meal_types)
        self.cutoff_hour = settings.submission_cutoff_hour
        self.unique_per_date = settings.enforce_single_submission_per_date
        self.clock = clock or make_clock(settings.timezone)

    # ---- 创建 ----

    def create_from_payload(self, user_id: int, payload: Mapping[str, Any]) -> MealSubmissionWithCounts:
        """
        按前端请求体创建提交

        请求体形如 {mealDate, notes?, <餐段>: {adultCount, childCount, specialRequirements?}}
        """
        if not isinstance(payload, Mapping):
            raise ValidationError("Request body must be an object")
        if "mealDate" not in payload:
            raise ValidationError("mealDate is required")

        counts = {meal_type: payload.get(meal_type) for meal_type in self.meal_types}
        return self.create_submission(
            user_id=user_id,
            meal_date=payload["mealDate"],
            notes=payload.get("notes"),
            counts=counts,
        )

    def create_submission(
        self,
        user_id: int,
        meal_date: Any,
        notes: Optional[str],
        counts: Mapping[str, Any],
    ) -> MealSubmissionWithCounts:
        """
        创建餐数提交

        Args:
            user_id: 提交人ID
            meal_date: 用餐日期（date 或可解析的字符串）
            notes: 备注
            counts: 餐段 -> 人数（MealCountInput 或字典）

        Returns:
            MealSubmissionWithCounts: 带提交人和人数的完整记录

        Raises:
            ValidationError: 日期格式错误、人数不合法或缺少餐段
            SubmissionWindowError: 餐日早于最早可提交日期
            UserNotFoundError: 提交人不存在
            DuplicateSubmissionError: 开启唯一约束时同日重复提交
        """
        target = parse_meal_date(meal_date)
        validated = self._validate_counts(counts)
        notes = self._clean_notes(notes)

        if self.store.get_user(user_id) is None:
            raise UserNotFoundError(user_id)

        now = self.clock()
        if not is_submittable(target, now, self.cutoff_hour):
            earliest = earliest_submittable_date(now, self.cutoff_hour)
            raise SubmissionWindowError(
                f"Meal counts for {target.isoformat()} can no longer be submitted; "
                f"the earliest date is {earliest.isoformat()}",
                details={"meal_date": target.isoformat(), "earliest_date": earliest.isoformat()},
            )

        submission_id = self.store.create_submission(
            user_id=user_id,
            meal_date=target,
            submitted_at=now.replace(tzinfo=None),
            notes=notes,
            counts=validated,
            unique_per_date=self.unique_per_date,
        )
        logger.info("Submission %s created by user %s for %s", submission_id, user_id, target)
        return self.store.get_submission(submission_id)

    def _validate_counts(self, counts: Mapping[str, Any]) -> List[tuple]:
        """按配置顺序校验每个餐段的人数"""
        if not isinstance(counts, Mapping):
            raise ValidationError("Meal counts must be an object")

        validated = []
        for meal_type in self.meal_types:
            block = counts.get(meal_type)
            if block is None:
                raise ValidationError(f"Missing counts for {meal_type}",
                                      details={"meal_type": meal_type})
            if isinstance(block, MealCountInput):
                validated.append((meal_type, block))
                continue
            try:
                validated.append((meal_type, MealCountInput.model_validate(block)))
            except PydanticValidationError as e:
                raise ValidationError(
                    self._describe(meal_type, e),
                    details={"meal_type": meal_type, "errors": self._error_list(e)},
                )

        unknown = set(counts) - set(self.meal_types) - set(PAYLOAD_META_FIELDS)
        if unknown:
            logger.debug("Ignoring unknown meal types: %s", sorted(unknown))
        return validated

    @staticmethod
    def _describe(meal_type: str, error: PydanticValidationError) -> str:
        first = error.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        prefix = f"{meal_type}.{field}" if field else meal_type
        return f"{prefix}: {first.get('msg', 'invalid value')}"

    @staticmethod
    def _error_list(error: PydanticValidationError) -> List[Dict[str, Any]]:
        return [
            {"loc": [str(p) for p in e.get("loc", ())], "msg": e.get("msg", "")}
            for e in error.errors()
        ]

    @staticmethod
    def _clean_notes(notes: Any) -> Optional[str]:
        if notes is None:
            return None
        if not isinstance(notes, str):
            raise ValidationError("notes must be a string")
        return notes if notes.strip() else None

    # ---- 状态变更 ----

    def transition_status(self, submission_id: int, status: Any,
                          actor: Optional[User] = None) -> MealSubmissionWithCounts:
        """
        覆盖提交的审核状态

        任意状态之间都可以切换（管理员可以撤回已通过的提交），并发修改以最后一次写入为准。
        调用方负责管理员鉴权；传入 actor 时会再次校验其角色。
        """
        try:
            new_status = SubmissionStatus(status)
        except ValueError:
            raise ValidationError(
                "Invalid status",
                details={"status": status, "allowed": [s.value for s in SubmissionStatus]},
            )

        if actor is not None and not actor.can(Capability.REVIEW_SUBMISSIONS):
            raise AuthorizationError("Admin permission required")

        actor_id = actor.id if actor is not None else None
        if not self.store.update_submission_status(submission_id, new_status, actor_id=actor_id):
            raise SubmissionNotFoundError(submission_id)

        logger.info("Submission %s set to %s by %s", submission_id, new_status.value, actor_id)
        return self.get_submission(submission_id)

    def status_history(self, submission_id: int) -> List[AuditLog]:
        """提交的操作记录（创建和每次状态变更）"""
        self.get_submission(submission_id)
        return self.store.list_logs(ref_id=submission_id, action_prefix="submission_")

    # ---- 查询 ----

    def get_submission(self, submission_id: int) -> MealSubmissionWithCounts:
        submission = self.store.get_submission(submission_id)
        if submission is None:
            raise SubmissionNotFoundError(submission_id)
        return submission

    def list_for_user(self, user_id: int) -> List[MealSubmissionWithCounts]:
        return self.store.list_submissions(user_id=user_id)

    def list_by_date(self, meal_date: Any) -> List[MealSubmissionWithCounts]:
        return self.store.list_submissions(meal_date=parse_meal_date(meal_date))

    def list_by_range(self, start: Any, end: Any) -> List[MealSubmissionWithCounts]:
        """按餐日区间查询，首尾日期都包含在内"""
        start_date = parse_meal_date(start)
        end_date = parse_meal_date(end)
        if start_date > end_date:
            raise ValidationError(
                "Start date must not be after end date",
                details={"start": start_date.isoformat(), "end": end_date.isoformat()},
            )
        return self.store.list_submissions(start_date=start_date, end_date=end_date)

    def list_all(self) -> List[MealSubmissionWithCounts]:
        return self.store.list_submissions()

    def list_visible_to(self, user: User, meal_date: Any = None) -> List[MealSubmissionWithCounts]:
        """管理员可见全部提交，普通员工只能看到自己的"""
        day = parse_meal_date(meal_date) if meal_date is not None else None
        if user.can(Capability.VIEW_ALL_SUBMISSIONS):
            return self.store.list_submissions(meal_date=day)
        return self.store.list_submissions(user_id=user.id, meal_date=day)

    def get_visible_to(self, user: User, submission_id: int) -> MealSubmissionWithCounts:
        submission = self.get_submission(submission_id)
        if submission.user_id != user.id and not user.can(Capability.VIEW_ALL_SUBMISSIONS):
            raise AuthorizationError("You can only view your own submissions")
        return submission

    def submission_window(self) -> Dict[str, Any]:
        """当前可提交窗口，用于前端提示"""
        now = self.clock()
        return {
            "now": now.replace(tzinfo=None).isoformat(timespec="seconds"),
            "earliest_date": earliest_submittable_date(now, self.cutoff_hour),
            "cutoff_hour": self.cutoff_hour,
            "meal_types": list(self.meal_types),
        }

    def today(self) -> date:
        return self.clock().date()
