import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, ForeignKey, Numeric, Boolean, Date, DateTime, Integer,
    Enum as SAEnum, Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from budget_alert.database import Base

PERIOD_TYPES = ("daily", "weekly", "monthly", "quarterly", "yearly", "custom")


class Budget(Base):
    __tablename__ = "budgets"
    __table_args__ = (
        Index("ix_budgets_user_category", "user_id", "category_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    # NULL = 总预算（匹配所有分类）
    category_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("categories.id")
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    period_type: Mapped[str] = mapped_column(
        SAEnum(*PERIOD_TYPES, name="budget_period_type"), default="monthly"
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    warning_threshold_pct: Mapped[int] = mapped_column(Integer, default=80)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # 关联
    category = relationship("Category")
