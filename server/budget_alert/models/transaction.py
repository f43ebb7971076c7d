import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, ForeignKey, Numeric, Date, DateTime, Text,
    Enum as SAEnum, Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from budget_alert.database import Base

TRANSACTION_TYPES = ("expense", "income", "transfer")


class Transaction(Base):
    """主服务账本写入的交易流水，本服务只读，用于汇总预算支出"""

    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_user_date", "user_id", "transaction_date"),
        Index("ix_transactions_user_category", "user_id", "category_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    category_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("categories.id")
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    transaction_type: Mapped[str] = mapped_column(
        SAEnum(*TRANSACTION_TYPES, name="transaction_type"), default="expense"
    )
    status: Mapped[str] = mapped_column(String(20), default="completed")
    description: Mapped[str | None] = mapped_column(Text)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
