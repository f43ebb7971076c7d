from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, ForeignKey, Numeric, Integer, Date, DateTime, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from budget_alert.database import Base


class BudgetSpendingSnapshot(Base):
    """预算在某个周期内的支出快照，每次相关交易后整体重算并 upsert"""

    __tablename__ = "budget_spending"
    __table_args__ = (
        UniqueConstraint(
            "budget_id", "period_start", "period_end",
            name="uq_budget_spending_period",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    budget_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("budgets.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    total_spent: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=0)
    transaction_count: Mapped[int] = mapped_column(Integer, default=0)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
