"""预算周期计算：给定预算与参考日期，得到当前所在的统计周期"""

from dataclasses import dataclass
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta


@dataclass(frozen=True)
class Period:
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def _calendar_window(period_type: str, today: date) -> tuple[date, date] | None:
    if period_type == "daily":
        return today, today
    if period_type == "weekly":
        # 周日为一周的第一天
        start = today - timedelta(days=(today.weekday() + 1) % 7)
        return start, start + timedelta(days=6)
    if period_type == "monthly":
        start = today.replace(day=1)
        return start, start + relativedelta(months=1) - timedelta(days=1)
    if period_type == "quarterly":
        start = date(today.year, 3 * ((today.month - 1) // 3) + 1, 1)
        return start, start + relativedelta(months=3) - timedelta(days=1)
    if period_type == "yearly":
        return date(today.year, 1, 1), date(today.year, 12, 31)
    return None


def current_period(
    period_type: str,
    start_date: date,
    end_date: date,
    today: date,
) -> Period | None:
    """
    返回包含 today 的周期，并裁剪到预算自身的 [start_date, end_date]。
    today 不在预算有效期内时返回 None（没有需要更新的周期）。
    custom 类型（或未知类型）的周期即整个有效期。
    """
    if today < start_date or today > end_date:
        return None

    window = _calendar_window(period_type, today)
    if window is None:
        return Period(start_date, end_date)

    start, end = window
    return Period(max(start, start_date), min(end, end_date))
