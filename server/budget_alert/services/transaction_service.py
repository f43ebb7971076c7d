"""
交易后的预算检查：一笔支出 → 找出受影响的预算 → 逐个刷新支出、判定、去重、生成预警。

每个预算在独立的 SAVEPOINT 中处理，单个预算失败只记录错误，不影响其余预算，
也不会向调用方抛出异常（交易本身已在账本中入账）。
"""

import logging
from datetime import date
from decimal import Decimal

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from budget_alert.models.budget import Budget
from budget_alert.schemas.transaction import (
    TransactionIn,
    BudgetCheck,
    ProcessingSummary,
    ProcessingResult,
    BudgetImpact,
    PreviewResult,
    BulkItemResult,
    BulkResult,
    RecalculateItem,
    RecalculateResult,
)
from budget_alert.services.alert_service import AlertService
from budget_alert.services.budget_service import BudgetService
from budget_alert.services.spending_service import SpendingService
from budget_alert.services.threshold import classify, percentage_used, resolve_thresholds
from budget_alert.utils.clock import Clock, system_clock
from budget_alert.utils.email import EmailSender
from budget_alert.utils.formatters import round_money, to_decimal_or_zero

logger = logging.getLogger(__name__)


def is_budget_relevant(transaction_type: str, amount: Decimal) -> bool:
    """只有金额为正的支出会影响预算"""
    return transaction_type == "expense" and amount > 0


class TransactionService:

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = system_clock,
        email_sender: EmailSender | None = None,
    ):
        self.db = db
        self.clock = clock
        self.spending = SpendingService(db, clock)
        self.budgets = BudgetService(db, clock)
        self.alerts = AlertService(db, clock, email_sender)

    # ───── 单笔处理 ─────

    async def process_transaction(self, tx: TransactionIn) -> ProcessingResult:
        transaction_date = tx.transaction_date or self.clock.today()
        result = await self.process_expense(
            tx.user_id,
            tx.category_id,
            tx.amount,
            transaction_date,
            transaction_type=tx.transaction_type,
        )
        result.transaction = tx.model_copy(update={"transaction_date": transaction_date})
        return result

    async def process_expense(
        self,
        user_id: str,
        category_id: str | None,
        amount,
        transaction_date: date,
        transaction_type: str = "expense",
    ) -> ProcessingResult:
        amount = to_decimal_or_zero(amount)
        if not is_budget_relevant(transaction_type, amount):
            return ProcessingResult(
                status="skipped",
                message="Transaction processed - no budget check needed",
            )

        logger.info(f"[预算检查] 用户 {user_id} 支出 {amount}，分类 {category_id}")
        budgets = await self.budgets.get_affected_budgets(user_id, category_id, transaction_date)
        if not budgets:
            return ProcessingResult(
                status="processed",
                message="No active budgets found for this transaction",
            )

        checks = []
        for budget in budgets:
            checks.append(await self._check_budget_isolated(budget, user_id))

        summary = ProcessingSummary(
            budgets_checked=sum(1 for c in checks if c.error is None),
            alerts_sent=sum(1 for c in checks if c.alert_sent),
            total_budgets=len(budgets),
        )
        return ProcessingResult(
            status="processed",
            message=f"Transaction processed successfully. Checked {len(budgets)} budget(s).",
            budget_checks=checks,
            summary=summary,
        )

    async def _check_budget_isolated(self, budget: Budget, user_id: str) -> BudgetCheck:
        # SAVEPOINT 回滚后不再访问 ORM 对象的属性
        budget_id, budget_name = budget.id, budget.name
        try:
            async with self.db.begin_nested():
                return await self.check_budget(budget_id, budget_name, user_id)
        except Exception as e:
            logger.error(f"[预算检查] 预算 {budget_id} 处理失败: {e}")
            return BudgetCheck(
                budget_id=budget_id,
                budget_name=budget_name,
                alert_sent=False,
                error=str(e),
            )

    async def check_budget(self, budget_id: str, budget_name: str, user_id: str) -> BudgetCheck:
        await self.spending.refresh(budget_id, user_id)
        alert_result = await self.alerts.check_and_send_alerts(user_id, budget_id)
        logger.info(f"[预算检查] 预算 {budget_name}: {alert_result.message}")
        return BudgetCheck(
            budget_id=budget_id,
            budget_name=budget_name,
            alert_sent=alert_result.success and alert_result.alert is not None,
            alert_type=alert_result.alert.alert_type if alert_result.alert else None,
            message=alert_result.message,
        )

    # ───── 批量 ─────

    async def process_bulk(self, transactions: list) -> BulkResult:
        """逐笔顺序处理，单笔失败不影响后续"""
        results: list[BulkItemResult] = []
        for idx, raw in enumerate(transactions):
            if not isinstance(raw, dict):
                results.append(BulkItemResult(
                    index=idx, success=False, transaction=raw,
                    error="Transaction must be an object",
                ))
                continue
            try:
                tx = TransactionIn.model_validate(raw)
                result = await self.process_transaction(tx)
                results.append(BulkItemResult(
                    index=idx, success=True, transaction=raw, result=result,
                ))
            except PydanticValidationError as e:
                errors = "; ".join(
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
                )
                results.append(BulkItemResult(
                    index=idx, success=False, transaction=raw, error=errors,
                ))
            except Exception as e:
                logger.error(f"[批量处理] 第 {idx + 1} 笔交易失败: {e}")
                results.append(BulkItemResult(
                    index=idx, success=False, transaction=raw, error=str(e),
                ))

        success_count = sum(1 for r in results if r.success)
        return BulkResult(
            processed_count=len(results),
            success_count=success_count,
            error_count=len(results) - success_count,
            results=results,
        )

    # ───── 预览（只读） ─────

    async def preview_impact(self, tx: TransactionIn) -> PreviewResult:
        amount = to_decimal_or_zero(tx.amount)
        if not is_budget_relevant(tx.transaction_type, amount):
            return PreviewResult(message="No budget impact for this transaction type")

        transaction_date = tx.transaction_date or self.clock.today()
        budgets = await self.budgets.get_affected_budgets(tx.user_id, tx.category_id, transaction_date)
        preference = await self.alerts.get_preference(tx.user_id)

        impacts = []
        for budget in budgets:
            snapshot = await self.spending.get_current_snapshot(budget.id)
            if snapshot is not None:
                current_spent = round_money(snapshot.total_spent)
            else:
                current_spent = (await self.spending.compute_spending(budget.id, tx.user_id)).total_spent

            new_total = current_spent + amount
            new_pct = percentage_used(new_total, budget.amount)
            thresholds = resolve_thresholds(budget, preference)
            impacts.append(BudgetImpact(
                budget_id=budget.id,
                budget_name=budget.name,
                budget_amount=float(budget.amount),
                current_spent=float(current_spent),
                transaction_amount=float(amount),
                new_total=float(new_total),
                current_percentage=float(percentage_used(current_spent, budget.amount)),
                new_percentage=float(new_pct),
                would_trigger_alert=classify(new_pct, thresholds.warning, thresholds.critical),
                currency=budget.currency,
            ))

        return PreviewResult(
            budgets=impacts,
            total_budgets_affected=len(impacts),
            alerts_would_trigger=sum(1 for i in impacts if i.would_trigger_alert),
        )

    # ───── 维护：全量重算 ─────

    async def recalculate_user_budgets(self, user_id: str) -> RecalculateResult:
        budgets = await self.budgets.list_user_budgets(user_id)
        results: list[RecalculateItem] = []
        for budget in budgets:
            budget_id, budget_name = budget.id, budget.name
            try:
                async with self.db.begin_nested():
                    snapshot = await self.spending.refresh(budget_id, user_id)
                results.append(RecalculateItem(
                    budget_id=budget_id,
                    budget_name=budget_name,
                    success=True,
                    total_spent=float(snapshot.total_spent) if snapshot else None,
                    transaction_count=snapshot.transaction_count if snapshot else None,
                ))
            except Exception as e:
                logger.error(f"[预算重算] 预算 {budget_id} 失败: {e}")
                results.append(RecalculateItem(
                    budget_id=budget_id,
                    budget_name=budget_name,
                    success=False,
                    error=str(e),
                ))

        return RecalculateResult(
            processed_budgets=len(results),
            success_count=sum(1 for r in results if r.success),
            results=results,
        )
