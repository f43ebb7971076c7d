"""预算管理服务：增删改查、冲突检查、受交易影响的预算查找"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from budget_alert.errors import ConflictError, NotFoundError, ValidationError
from budget_alert.models.budget import Budget
from budget_alert.models.preference import NotificationPreference
from budget_alert.models.spending import BudgetSpendingSnapshot
from budget_alert.schemas.budget import BudgetCreate, BudgetUpdate, BudgetResponse, BudgetOverview
from budget_alert.services.spending_service import SpendingService
from budget_alert.services.threshold import (
    EXCEEDED,
    WARNING,
    budget_status,
    classify,
    percentage_used,
    resolve_thresholds,
)
from budget_alert.utils.clock import Clock, system_clock
from budget_alert.utils.formatters import round_money, to_decimal_or_zero

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "name", "amount", "period_type", "start_date", "end_date",
    "currency", "warning_threshold_pct",
)


class BudgetService:

    def __init__(self, db: AsyncSession, clock: Clock = system_clock):
        self.db = db
        self.clock = clock
        self.spending = SpendingService(db, clock)

    async def _load(self, budget_id: str, user_id: str) -> Budget | None:
        result = await self.db.execute(
            select(Budget)
            .options(selectinload(Budget.category))
            .where(
                Budget.id == budget_id,
                Budget.user_id == user_id,
                Budget.is_active == True,
            )
        )
        return result.scalar_one_or_none()

    async def find_conflicts(
        self,
        user_id: str,
        category_id: str,
        start_date: date,
        end_date: date,
        exclude_budget_id: str | None = None,
    ) -> list[Budget]:
        """同一分类下有效期重叠的启用预算"""
        stmt = (
            select(Budget)
            .where(
                Budget.user_id == user_id,
                Budget.category_id == category_id,
                Budget.is_active == True,
                Budget.start_date <= end_date,
                Budget.end_date >= start_date,
            )
            .order_by(Budget.start_date)
        )
        if exclude_budget_id:
            stmt = stmt.where(Budget.id != exclude_budget_id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _ensure_no_conflict(
        self,
        user_id: str,
        category_id: str | None,
        start_date: date,
        end_date: date,
        exclude_budget_id: str | None = None,
    ):
        if not category_id:
            return
        conflicts = await self.find_conflicts(
            user_id, category_id, start_date, end_date, exclude_budget_id
        )
        if conflicts:
            details = ", ".join(
                f'"{c.name}" ({c.start_date} to {c.end_date})' for c in conflicts
            )
            raise ConflictError(
                f"Budget conflict detected! Existing budgets overlap the selected dates: {details}. "
                f"Please choose different dates or modify existing budgets."
            )

    async def to_response(self, budget: Budget) -> BudgetResponse:
        """附带当前周期使用情况；状态与实时预警使用同一套阈值"""
        snapshot = await self.spending.get_current_snapshot(budget.id)
        spent = round_money(snapshot.total_spent) if snapshot else Decimal("0.00")
        amount = to_decimal_or_zero(budget.amount)
        pct = percentage_used(spent, amount)
        preference = await self.db.get(NotificationPreference, budget.user_id)
        thresholds = resolve_thresholds(budget, preference)
        return BudgetResponse(
            id=budget.id,
            user_id=budget.user_id,
            category_id=budget.category_id,
            category_name=budget.category.name if budget.category else None,
            name=budget.name,
            amount=float(amount),
            period_type=budget.period_type,
            start_date=budget.start_date,
            end_date=budget.end_date,
            currency=budget.currency,
            warning_threshold_pct=budget.warning_threshold_pct,
            is_active=budget.is_active,
            total_spent=float(spent),
            transaction_count=snapshot.transaction_count if snapshot else 0,
            percentage_used=float(pct),
            remaining=float(amount - spent),
            status=budget_status(classify(pct, thresholds.warning, thresholds.critical)),
            period_start=snapshot.period_start if snapshot else None,
            period_end=snapshot.period_end if snapshot else None,
            created_at=budget.created_at,
            updated_at=budget.updated_at,
        )

    # ───── 增删改查 ─────

    async def create_budget(self, body: BudgetCreate) -> Budget:
        if not body.allow_overlapping:
            await self._ensure_no_conflict(
                body.user_id, body.category_id, body.start_date, body.end_date
            )

        budget = Budget(
            user_id=body.user_id,
            category_id=body.category_id,
            name=body.name,
            amount=Decimal(str(body.amount)),
            period_type=body.period_type,
            start_date=body.start_date,
            end_date=body.end_date,
            currency=body.currency,
            warning_threshold_pct=body.warning_threshold_pct,
        )
        self.db.add(budget)
        await self.db.flush()

        # 初始化当前周期的支出快照
        await self.spending.refresh(budget.id, budget.user_id)
        logger.info(f"[预算] 已创建预算 {budget.name} ({budget.id})")
        return await self._load(budget.id, budget.user_id)

    async def list_user_budgets(self, user_id: str) -> list[Budget]:
        result = await self.db.execute(
            select(Budget)
            .options(selectinload(Budget.category))
            .where(Budget.user_id == user_id, Budget.is_active == True)
            .order_by(Budget.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_budget(self, budget_id: str, user_id: str) -> Budget:
        budget = await self._load(budget_id, user_id)
        if not budget:
            raise NotFoundError("Budget")
        return budget

    async def update_budget(self, budget_id: str, user_id: str, body: BudgetUpdate) -> Budget:
        budget = await self.get_budget(budget_id, user_id)

        changes = {
            k: v for k, v in body.model_dump(exclude_unset=True).items()
            if k in UPDATABLE_FIELDS and v is not None
        }
        if not changes:
            raise ValidationError("No valid fields to update")

        start = changes.get("start_date", budget.start_date)
        end = changes.get("end_date", budget.end_date)
        if end <= start:
            raise ValidationError("end_date must be after start_date")

        if ("start_date" in changes or "end_date" in changes) and not body.allow_overlapping:
            await self._ensure_no_conflict(
                user_id, budget.category_id, start, end, exclude_budget_id=budget.id
            )

        if "amount" in changes:
            changes["amount"] = Decimal(str(changes["amount"]))
        if "currency" in changes:
            changes["currency"] = changes["currency"].upper()
        for field, value in changes.items():
            setattr(budget, field, value)
        budget.updated_at = self.clock.now()
        await self.db.flush()

        # 周期或日期变化后快照所属周期也会变化，重新计算
        await self.spending.refresh(budget.id, user_id)
        return await self._load(budget.id, user_id)

    async def delete_budget(self, budget_id: str, user_id: str) -> bool:
        """软删除"""
        budget = await self._load(budget_id, user_id)
        if not budget:
            return False
        budget.is_active = False
        budget.updated_at = self.clock.now()
        await self.db.flush()
        return True

    # ───── 概览与单个预算重算 ─────

    async def overview(self, user_id: str) -> BudgetOverview:
        """用户预算总览：金额合计、超支 / 预警数量、按周期类型分布"""
        budgets = [await self.to_response(b) for b in await self.list_user_budgets(user_id)]

        result = BudgetOverview(budgets=budgets, budgets_by_period={})
        total_amount = Decimal("0")
        total_spent = Decimal("0")
        for b in budgets:
            result.total_budgets += 1
            if b.is_active:
                result.active_budgets += 1
            total_amount += to_decimal_or_zero(b.amount)
            total_spent += to_decimal_or_zero(b.total_spent)
            # status 来自 classify()，与实时预警判定一致
            if b.status == EXCEEDED:
                result.budgets_exceeded += 1
            elif b.status == WARNING:
                result.budgets_in_warning += 1
            result.budgets_by_period[b.period_type] = result.budgets_by_period.get(b.period_type, 0) + 1

        result.total_budget_amount = float(round_money(total_amount))
        result.total_spent = float(round_money(total_spent))
        return result

    async def recalculate_budget(
        self, budget_id: str, user_id: str
    ) -> BudgetSpendingSnapshot | None:
        """重算单个预算当前周期的支出；预算不在有效期内时返回 None"""
        await self.get_budget(budget_id, user_id)
        snapshot = await self.spending.refresh(budget_id, user_id)
        logger.info(f"[预算] 已重算预算 {budget_id} 的支出")
        return snapshot

    # ───── 交易关联 ─────

    async def get_affected_budgets(
        self, user_id: str, category_id: str | None, transaction_date: date
    ) -> list[Budget]:
        """
        查找交易可能影响的预算：同分类预算 + 总预算（category_id 为空），
        且交易日期落在预算有效期内。
        """
        if category_id:
            category_filter = or_(
                Budget.category_id == category_id,
                Budget.category_id.is_(None),
            )
        else:
            category_filter = Budget.category_id.is_(None)

        result = await self.db.execute(
            select(Budget)
            .options(selectinload(Budget.category))
            .where(
                Budget.user_id == user_id,
                Budget.is_active == True,
                category_filter,
                Budget.start_date <= transaction_date,
                Budget.end_date >= transaction_date,
            )
            .order_by(Budget.created_at)
        )
        budgets = list(result.scalars().all())
        logger.info(
            f"[预算] 用户 {user_id} 分类 {category_id} 日期 {transaction_date} 命中 {len(budgets)} 个预算"
        )
        return budgets
