"""
预算预警服务：阈值判定 → 去重 → 生成预警记录（邮件可选）。

去重规则：同一预算同一类型的上一条预警
  - 已超过冷却时间（默认 24 小时）→ 允许再次预警；
  - 冷却期内，但自上次预警以来支出又增长了预算的 5 个百分点以上 → 允许；
  - 否则抑制。
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from budget_alert.config import settings
from budget_alert.models.alert import BudgetAlert
from budget_alert.models.budget import Budget
from budget_alert.models.preference import NotificationPreference
from budget_alert.models.user import User
from budget_alert.schemas.alert import AlertResponse, AlertCheckResult, AlertStats
from budget_alert.services.spending_service import SpendingService
from budget_alert.services.threshold import classify, percentage_used, resolve_thresholds
from budget_alert.utils.clock import Clock, system_clock
from budget_alert.utils.email import EmailSender, DisabledEmailSender
from budget_alert.utils.formatters import format_currency, round_money, to_decimal_or_zero

logger = logging.getLogger(__name__)


@dataclass
class BudgetState:
    """一次判定所用的预算快照数据"""

    budget: Budget
    category_name: str | None
    total_spent: Decimal
    transaction_count: int
    percentage_used: Decimal
    preference: NotificationPreference | None
    user: User | None

    @property
    def email_alerts(self) -> bool:
        # 没有偏好记录时按默认开启处理
        if self.preference is None:
            return True
        return bool(self.preference.email_alerts)


# ───── 文案 ─────

def generate_alert_message(state: BudgetState, alert_type: str) -> str:
    budget = state.budget
    category_name = state.category_name or "General"
    spent = format_currency(state.total_spent, budget.currency)
    amount = format_currency(budget.amount, budget.currency)
    pct = state.percentage_used

    match alert_type:
        case "warning":
            return (
                f"Budget Alert: You've spent {spent} ({pct}%) of your {amount} "
                f"{category_name} budget for this {budget.period_type}."
            )
        case "exceeded":
            return (
                f"Budget Exceeded: You've spent {spent} ({pct}%) of your {amount} "
                f"{category_name} budget for this {budget.period_type}. "
                f"Consider reviewing your spending."
            )
        case "critical":
            return (
                f"Critical Budget Alert: You've significantly exceeded your {amount} "
                f"{category_name} budget with {spent} spent ({pct}%)."
            )
        case _:
            return f"Budget notification for {category_name}: {spent} spent of {amount} budget."


def email_subject(alert_type: str, category_name: str | None) -> str:
    category = category_name or "Budget"
    match alert_type:
        case "warning":
            return f"Budget Warning - {category}"
        case "exceeded":
            return f"Budget Exceeded - {category}"
        case "critical":
            return f"Critical Budget Alert - {category}"
        case _:
            return f"Budget Notification - {category}"


def email_body(state: BudgetState, alert: BudgetAlert) -> str:
    user = state.user
    if user and user.first_name:
        user_name = f"{user.first_name} {user.last_name or ''}".strip()
    else:
        user_name = "User"
    budget = state.budget
    color = "#dc3545" if alert.alert_type == "exceeded" else "#ffc107"
    rows = [
        ("Category", state.category_name or "General"),
        ("Budget Amount", format_currency(budget.amount, budget.currency)),
        ("Amount Spent", format_currency(state.total_spent, budget.currency)),
        ("Percentage Used", f"{state.percentage_used}%"),
        ("Period", budget.period_type.capitalize()),
    ]
    table = "".join(
        f'<tr><td style="font-weight: bold;">{label}:</td><td>{value}</td></tr>'
        for label, value in rows
    )
    return (
        "<!DOCTYPE html><html><body style=\"font-family: Arial, sans-serif;\">"
        f"<h2>Hello {user_name},</h2>"
        f'<p style="font-weight: bold; color: {color};">{alert.message}</p>'
        f"<table>{table}</table>"
        f'<p><a href="{settings.DASHBOARD_URL}">View Your Dashboard</a></p>'
        "</body></html>"
    )


class AlertService:

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = system_clock,
        email_sender: EmailSender | None = None,
        cooldown_hours: float = settings.ALERT_COOLDOWN_HOURS,
        spending_delta_pct: float = settings.ALERT_SPENDING_DELTA_PCT,
        email_enabled: bool = settings.EMAIL_ENABLED,
    ):
        self.db = db
        self.clock = clock
        self.email_sender = email_sender or DisabledEmailSender()
        self.cooldown_hours = Decimal(str(cooldown_hours))
        self.spending_delta_pct = Decimal(str(spending_delta_pct))
        self.email_enabled = email_enabled
        self.spending = SpendingService(db, clock)

    # ───── 读取 ─────

    async def get_preference(self, user_id: str) -> NotificationPreference | None:
        return await self.db.get(NotificationPreference, user_id)

    async def load_budget_state(self, budget_id: str, user_id: str) -> BudgetState | None:
        result = await self.db.execute(
            select(Budget)
            .options(selectinload(Budget.category))
            .where(
                Budget.id == budget_id,
                Budget.user_id == user_id,
                Budget.is_active == True,
            )
        )
        budget = result.scalar_one_or_none()
        if not budget:
            return None

        snapshot = await self.spending.get_current_snapshot(budget.id)
        total_spent = round_money(snapshot.total_spent) if snapshot else Decimal("0.00")
        return BudgetState(
            budget=budget,
            category_name=budget.category.name if budget.category else None,
            total_spent=total_spent,
            transaction_count=snapshot.transaction_count if snapshot else 0,
            percentage_used=percentage_used(total_spent, budget.amount),
            preference=await self.get_preference(user_id),
            user=await self.db.get(User, user_id),
        )

    async def latest_alert(
        self, budget_id: str, user_id: str, alert_type: str
    ) -> BudgetAlert | None:
        result = await self.db.execute(
            select(BudgetAlert)
            .where(
                BudgetAlert.budget_id == budget_id,
                BudgetAlert.user_id == user_id,
                BudgetAlert.alert_type == alert_type,
            )
            .order_by(BudgetAlert.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    # ───── 判定 ─────

    async def check_and_send_alerts(self, user_id: str, budget_id: str) -> AlertCheckResult:
        state = await self.load_budget_state(budget_id, user_id)
        if state is None:
            return AlertCheckResult(success=False, message="Budget not found")

        thresholds = resolve_thresholds(state.budget, state.preference)
        alert_type = classify(state.percentage_used, thresholds.warning, thresholds.critical)

        if not alert_type or not state.email_alerts:
            return AlertCheckResult(message="No alert needed")

        if await self.should_suppress(
            budget_id, user_id, alert_type, state.total_spent, state.budget.amount
        ):
            return AlertCheckResult(message="Alert already sent recently")

        alert = await self.emit(state, alert_type)
        return AlertCheckResult(
            message=f"{alert_type} alert sent successfully",
            alert=AlertResponse.model_validate(alert),
        )

    async def should_suppress(
        self,
        budget_id: str,
        user_id: str,
        alert_type: str,
        current_spent,
        budget_amount,
    ) -> bool:
        last_alert = await self.latest_alert(budget_id, user_id, alert_type)
        if last_alert is None:
            return False

        elapsed = self.clock.now() - last_alert.created_at
        hours_since = Decimal(str(elapsed.total_seconds())) / 3600
        if hours_since >= self.cooldown_hours:
            return False

        # 冷却期内：重新读取预算与支出，不信任调用方传入的值
        budget = await self.spending.get_active_budget(budget_id, user_id)
        if budget is None:
            return True

        snapshot = await self.spending.get_current_snapshot(budget_id)
        spent_now = to_decimal_or_zero(snapshot.total_spent if snapshot else 0)
        amount = to_decimal_or_zero(budget.amount)

        # 退款会得到负增长，不会触发重新预警
        increase = spent_now - to_decimal_or_zero(last_alert.current_spent)
        increase_pct = increase / amount * 100 if amount > 0 else Decimal("0")

        logger.debug(
            f"[预算预警] 去重 budget={budget_id} type={alert_type} "
            f"hours={hours_since:.2f} increase={increase_pct:.2f}% "
            f"(caller spent={current_spent}, amount={budget_amount})"
        )
        return increase_pct < self.spending_delta_pct

    # ───── 生成 ─────

    async def emit(self, state: BudgetState, alert_type: str) -> BudgetAlert:
        budget = state.budget
        alert = BudgetAlert(
            budget_id=budget.id,
            user_id=budget.user_id,
            alert_type=alert_type,
            current_spent=state.total_spent,
            budget_amount=round_money(budget.amount),
            percentage_used=state.percentage_used,
            message=generate_alert_message(state, alert_type),
            is_read=False,
            email_sent=False,
            created_at=self.clock.now(),
        )
        self.db.add(alert)
        await self.db.flush()
        logger.info(
            f"[预算预警] 预算 {budget.name} 触发 {alert_type}，已用 {state.percentage_used}%"
        )

        if self.email_enabled and state.user and state.user.email:
            await self._send_email(state, alert)
        return alert

    async def _send_email(self, state: BudgetState, alert: BudgetAlert) -> None:
        """邮件发送失败只记日志，预警记录保持不变"""
        try:
            message_id = await self.email_sender.send(
                state.user.email,
                email_subject(alert.alert_type, state.category_name),
                email_body(state, alert),
                alert.message,
            )
        except Exception as e:
            logger.warning(f"[预算预警] 预警 {alert.id} 邮件发送失败: {e}")
            return

        alert.email_sent = True
        alert.email_sent_at = self.clock.now()
        await self.db.flush()
        logger.info(f"[预算预警] 预警 {alert.id} 邮件已发送: {message_id}")

    # ───── 预警收件箱 ─────

    async def list_user_alerts(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> list[AlertResponse]:
        result = await self.db.execute(
            select(BudgetAlert)
            .options(selectinload(BudgetAlert.budget).selectinload(Budget.category))
            .where(BudgetAlert.user_id == user_id)
            .order_by(BudgetAlert.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        alerts = []
        for a in result.scalars().all():
            resp = AlertResponse.model_validate(a)
            if a.budget:
                resp.budget_name = a.budget.name
                resp.category_name = a.budget.category.name if a.budget.category else None
            alerts.append(resp)
        return alerts

    async def mark_alert_as_read(self, alert_id: str, user_id: str) -> AlertResponse | None:
        result = await self.db.execute(
            select(BudgetAlert).where(
                BudgetAlert.id == alert_id,
                BudgetAlert.user_id == user_id,
            )
        )
        alert = result.scalar_one_or_none()
        if not alert:
            return None
        if not alert.is_read:
            alert.is_read = True
            alert.read_at = self.clock.now()
            await self.db.flush()
        return AlertResponse.model_validate(alert)

    async def mark_all_as_read(self, user_id: str) -> int:
        result = await self.db.execute(
            update(BudgetAlert)
            .where(BudgetAlert.user_id == user_id, BudgetAlert.is_read == False)
            .values(is_read=True, read_at=self.clock.now())
        )
        return result.rowcount or 0

    async def unread_count(self, user_id: str) -> int:
        result = await self.db.execute(
            select(func.count(BudgetAlert.id)).where(
                BudgetAlert.user_id == user_id,
                BudgetAlert.is_read == False,
            )
        )
        return int(result.scalar() or 0)

    async def alert_stats(self, user_id: str) -> AlertStats:
        now = self.clock.now()
        week_ago = now - timedelta(days=7)
        month_ago = now - timedelta(days=30)

        result = await self.db.execute(
            select(BudgetAlert.alert_type, BudgetAlert.is_read, BudgetAlert.email_sent, BudgetAlert.created_at)
            .where(BudgetAlert.user_id == user_id)
        )
        stats = AlertStats(alerts_by_type={})
        for alert_type, is_read, email_sent, created_at in result.all():
            stats.total_alerts += 1
            stats.alerts_by_type[alert_type] = stats.alerts_by_type.get(alert_type, 0) + 1
            if not is_read:
                stats.unread_alerts += 1
            if email_sent:
                stats.emails_sent += 1
            if created_at > week_ago:
                stats.alerts_this_week += 1
            if created_at > month_ago:
                stats.alerts_this_month += 1
        return stats
