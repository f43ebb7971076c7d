import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, ForeignKey, Numeric, Boolean, DateTime, Text,
    Enum as SAEnum, Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from budget_alert.database import Base

ALERT_TYPES = ("warning", "exceeded", "critical")


class BudgetAlert(Base):
    """预警记录：只追加，不删除；除已读/邮件状态外不再修改"""

    __tablename__ = "budget_alerts"
    __table_args__ = (
        Index("ix_budget_alerts_dedup", "budget_id", "user_id", "alert_type", "created_at"),
        Index("ix_budget_alerts_user_read", "user_id", "is_read"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    budget_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("budgets.id"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    alert_type: Mapped[str] = mapped_column(
        SAEnum(*ALERT_TYPES, name="budget_alert_type"), nullable=False
    )
    current_spent: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    budget_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    percentage_used: Mapped[Decimal] = mapped_column(Numeric(7, 2), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    email_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    email_sent_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    read_at: Mapped[datetime | None] = mapped_column(DateTime)

    budget = relationship("Budget")
