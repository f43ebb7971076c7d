"""预算阈值判定：纯函数，实时处理与预览共用同一套阈值"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from budget_alert.config import settings
from budget_alert.utils.formatters import to_decimal_or_zero

WARNING = "warning"
EXCEEDED = "exceeded"
CRITICAL = "critical"

# None < warning < exceeded
SEVERITY = {None: 0, WARNING: 1, EXCEEDED: 2}


@dataclass(frozen=True)
class Thresholds:
    warning: Decimal
    critical: Decimal


def percentage_used(total_spent, budget_amount) -> Decimal:
    """已用百分比，保留两位小数；预算金额 <= 0 时为 0"""
    amount = to_decimal_or_zero(budget_amount)
    if amount <= 0:
        return Decimal("0.00")
    pct = to_decimal_or_zero(total_spent) / amount * 100
    return pct.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def classify(
    percentage: Decimal,
    warning_threshold: Decimal,
    critical_threshold: Decimal = Decimal(settings.CRITICAL_THRESHOLD),
) -> str | None:
    if percentage >= critical_threshold:
        return EXCEEDED
    if percentage >= warning_threshold:
        return WARNING
    return None


def resolve_thresholds(budget, preference=None) -> Thresholds:
    """
    预警阈值：用户偏好 > 预算自身 > 默认 80。
    超支阈值固定为 100，偏好中的 threshold_critical 不参与判定。
    """
    warning = None
    if preference is not None and preference.threshold_warning:
        warning = preference.threshold_warning
    if not warning:
        warning = budget.warning_threshold_pct or settings.DEFAULT_WARNING_THRESHOLD
    return Thresholds(
        warning=to_decimal_or_zero(warning),
        critical=Decimal(settings.CRITICAL_THRESHOLD),
    )


def budget_status(alert_type: str | None) -> str:
    """预算列表展示用的状态标识"""
    return alert_type or "normal"
