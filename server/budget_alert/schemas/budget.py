from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from budget_alert.config import settings

PeriodType = Literal["daily", "weekly", "monthly", "quarterly", "yearly", "custom"]


class BudgetCreate(BaseModel):
    user_id: str = Field(min_length=1)
    category_id: str | None = None  # NULL = 总预算
    name: str = Field(min_length=1, max_length=100)
    amount: float = Field(gt=0)
    period_type: PeriodType = "monthly"
    start_date: date
    end_date: date
    currency: str = Field(default=settings.DEFAULT_CURRENCY, min_length=3, max_length=3)
    warning_threshold_pct: int = Field(default=80, ge=1, le=100)
    allow_overlapping: bool = False

    @model_validator(mode="after")
    def _check_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        self.currency = self.currency.upper()
        self.name = self.name.strip()
        return self


class BudgetUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    amount: float | None = Field(default=None, gt=0)
    period_type: PeriodType | None = None
    start_date: date | None = None
    end_date: date | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    warning_threshold_pct: int | None = Field(default=None, ge=1, le=100)
    allow_overlapping: bool = False


class BudgetResponse(BaseModel):
    id: str
    user_id: str
    category_id: str | None
    category_name: str | None = None
    name: str
    amount: float
    period_type: str
    start_date: date
    end_date: date
    currency: str
    warning_threshold_pct: int
    is_active: bool
    # 当前周期使用情况（取自支出快照）
    total_spent: float = 0
    transaction_count: int = 0
    percentage_used: float = 0
    remaining: float = 0
    status: str = "normal"  # normal / warning / exceeded
    period_start: date | None = None
    period_end: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SpendingSnapshotResponse(BaseModel):
    budget_id: str
    user_id: str
    period_start: date
    period_end: date
    total_spent: float
    transaction_count: int
    last_updated: datetime | None = None

    model_config = {"from_attributes": True}


class BudgetOverview(BaseModel):
    total_budgets: int = 0
    active_budgets: int = 0
    total_budget_amount: float = 0
    total_spent: float = 0
    budgets_exceeded: int = 0
    budgets_in_warning: int = 0
    budgets_by_period: dict[str, int] = {}
    budgets: list[BudgetResponse] = []
