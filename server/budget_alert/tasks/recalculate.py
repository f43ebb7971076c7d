"""预算支出快照定时重算（纠正缓存漂移）"""

import logging

from sqlalchemy import select

from budget_alert.database import AsyncSessionLocal
from budget_alert.models.budget import Budget
from budget_alert.services.transaction_service import TransactionService
from budget_alert.utils.clock import Clock, system_clock

logger = logging.getLogger(__name__)


async def run_budget_recalculation(
    session_factory=AsyncSessionLocal,
    clock: Clock = system_clock,
) -> int:
    """
    每日凌晨执行
    为所有存在启用预算的用户全量重算当前周期支出，返回成功重算的预算数
    """
    logger.info(f"[预算重算] 开始执行，日期: {clock.today()}")

    async with session_factory() as db:
        result = await db.execute(
            select(Budget.user_id).where(Budget.is_active == True).distinct()
        )
        user_ids = [row[0] for row in result.all()]

        service = TransactionService(db, clock)
        total = 0
        for user_id in user_ids:
            try:
                summary = await service.recalculate_user_budgets(user_id)
                total += summary.success_count
            except Exception as e:
                logger.error(f"[预算重算] 用户 {user_id} 失败: {e}")

        await db.commit()
        logger.info(f"[预算重算] 完成，共重算 {total} 个预算")
        return total
