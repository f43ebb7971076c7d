"""预算支出汇总与快照缓存"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from budget_alert.errors import NotFoundError
from budget_alert.models.budget import Budget
from budget_alert.models.spending import BudgetSpendingSnapshot
from budget_alert.models.transaction import Transaction
from budget_alert.periods import Period, current_period
from budget_alert.utils.clock import Clock, system_clock
from budget_alert.utils.formatters import round_money, to_decimal_or_zero

logger = logging.getLogger(__name__)


@dataclass
class SpendingTotals:
    total_spent: Decimal
    transaction_count: int
    period_start: date | None
    period_end: date | None


class SpendingService:
    """
    支出汇总只做全量重算，不做增量累加；
    同一 (预算, 周期) 只有一行快照，重复刷新结果不变。
    """

    def __init__(self, db: AsyncSession, clock: Clock = system_clock):
        self.db = db
        self.clock = clock

    async def get_active_budget(self, budget_id: str, user_id: str) -> Budget | None:
        result = await self.db.execute(
            select(Budget)
            .options(selectinload(Budget.category))
            .where(
                Budget.id == budget_id,
                Budget.user_id == user_id,
                Budget.is_active == True,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    def current_period(self, budget: Budget) -> Period | None:
        return current_period(
            budget.period_type, budget.start_date, budget.end_date, self.clock.today()
        )

    async def aggregate(self, budget: Budget, period: Period) -> tuple[Decimal, int]:
        """汇总周期内已完成的支出交易；总预算（category_id 为空）匹配全部分类"""
        stmt = select(
            func.coalesce(func.sum(Transaction.amount), 0),
            func.count(Transaction.id),
        ).where(
            Transaction.user_id == budget.user_id,
            Transaction.transaction_type == "expense",
            Transaction.status == "completed",
            Transaction.amount > 0,
            Transaction.transaction_date >= period.start,
            Transaction.transaction_date <= period.end,
        )
        if budget.category_id:
            stmt = stmt.where(Transaction.category_id == budget.category_id)

        row = (await self.db.execute(stmt)).one()
        return round_money(to_decimal_or_zero(row[0])), int(row[1] or 0)

    async def compute_spending(self, budget_id: str, user_id: str) -> SpendingTotals:
        budget = await self.get_active_budget(budget_id, user_id)
        if not budget:
            raise NotFoundError("Budget")

        period = self.current_period(budget)
        if period is None:
            return SpendingTotals(Decimal("0.00"), 0, None, None)

        total, count = await self.aggregate(budget, period)
        return SpendingTotals(total, count, period.start, period.end)

    async def upsert_snapshot(
        self,
        budget_id: str,
        user_id: str,
        period_start: date,
        period_end: date,
        total_spent: Decimal,
        transaction_count: int,
    ) -> BudgetSpendingSnapshot:
        now = self.clock.now()
        values = dict(
            budget_id=budget_id,
            user_id=user_id,
            period_start=period_start,
            period_end=period_end,
            total_spent=total_spent,
            transaction_count=transaction_count,
            last_updated=now,
        )
        dialect = self.db.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        stmt = insert(BudgetSpendingSnapshot).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["budget_id", "period_start", "period_end"],
            set_={
                "total_spent": stmt.excluded.total_spent,
                "transaction_count": stmt.excluded.transaction_count,
                "last_updated": stmt.excluded.last_updated,
            },
        )
        await self.db.execute(stmt)

        result = await self.db.execute(
            select(BudgetSpendingSnapshot)
            .where(
                BudgetSpendingSnapshot.budget_id == budget_id,
                BudgetSpendingSnapshot.period_start == period_start,
                BudgetSpendingSnapshot.period_end == period_end,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def refresh(self, budget_id: str, user_id: str) -> BudgetSpendingSnapshot | None:
        """重算当前周期支出并写入快照；没有当前周期时不写入"""
        totals = await self.compute_spending(budget_id, user_id)
        if totals.period_start is None:
            logger.info(f"[预算支出] 预算 {budget_id} 当前不在有效期内，跳过")
            return None

        snapshot = await self.upsert_snapshot(
            budget_id,
            user_id,
            totals.period_start,
            totals.period_end,
            totals.total_spent,
            totals.transaction_count,
        )
        logger.info(
            f"[预算支出] 预算 {budget_id} 周期 {totals.period_start}~{totals.period_end} "
            f"支出 {totals.total_spent}，共 {totals.transaction_count} 笔"
        )
        return snapshot

    async def get_current_snapshot(self, budget_id: str) -> BudgetSpendingSnapshot | None:
        today = self.clock.today()
        result = await self.db.execute(
            select(BudgetSpendingSnapshot)
            .where(
                BudgetSpendingSnapshot.budget_id == budget_id,
                BudgetSpendingSnapshot.period_start <= today,
                BudgetSpendingSnapshot.period_end >= today,
            )
            .order_by(BudgetSpendingSnapshot.last_updated.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
