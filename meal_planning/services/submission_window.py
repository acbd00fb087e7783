"""
提交窗口校验

业务规则：
- 当前时间早于截止时刻（默认 22:00）时，最早可提交次日的餐数
- 截止时刻及之后（含整点），最早可提交后天的餐数
- 最早日期之后的任意日期均可提交，没有上限

规则必须使用服务端提交时刻的时间判断，客户端计算仅用于界面提示。
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from ..core.exceptions import ValidationError

DEFAULT_CUTOFF_HOUR = 22


def lead_days(now: datetime, cutoff_hour: int = DEFAULT_CUTOFF_HOUR) -> int:
    """当前时刻需要的提前天数"""
    return 2 if now.time() >= time(cutoff_hour) else 1


def earliest_submittable_date(now: datetime, cutoff_hour: int = DEFAULT_CUTOFF_HOUR) -> date:
    """当前时刻允许提交的最早餐日"""
    return now.date() + timedelta(days=lead_days(now, cutoff_hour))


def is_submittable(target_date: date, now: datetime,
                   cutoff_hour: int = DEFAULT_CUTOFF_HOUR) -> bool:
    """
    判断餐日当前是否可提交

    Args:
        target_date: 目标用餐日期
        now: 服务端当前时间（本地时区的墙上时间）
        cutoff_hour: 截止小时

    Returns:
        bool: 目标日期不早于最早可提交日期时为 True
    """
    if isinstance(target_date, datetime):
        target_date = target_date.date()
    return target_date >= earliest_submittable_date(now, cutoff_hour)


def parse_meal_date(value: Any) -> date:
    """
    将请求中的餐日解析为日期

    支持 date、datetime 以及 YYYY-MM-DD / ISO-8601 字符串；
    带时区的时间先换算为 UTC 再截取日期。无法解析时抛出 ValidationError。

    注意：这里按 UTC 截取，而提交窗口的当前时间使用 settings.timezone；
    服务端时区不是 UTC 时，客户端发送的本地零点时间戳可能落到前一天。
    需要按本地日期提交时应直接发送 YYYY-MM-DD。
    """
    if isinstance(value, datetime):
        try:
            return _truncate(value)
        except OverflowError:
            raise ValidationError("Invalid date format", details={"meal_date": value.isoformat()})
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Invalid date format", details={"meal_date": value})

    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        return _truncate(datetime.fromisoformat(text))
    except (ValueError, OverflowError):
        raise ValidationError("Invalid date format", details={"meal_date": value})


def _truncate(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()
