from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, Field


class TransactionIn(BaseModel):
    """主服务提交的已入账交易"""

    user_id: str = Field(min_length=1)
    category_id: str | None = None
    amount: float
    transaction_type: Literal["expense", "income", "transfer"] = "expense"
    transaction_date: date | None = None
    description: str = Field(default="", max_length=1000)


class BulkTransactionIn(BaseModel):
    # 每条单独校验，单条非法不影响其余
    transactions: list[Any] = Field(min_length=1)


class BudgetCheck(BaseModel):
    budget_id: str
    budget_name: str
    alert_sent: bool = False
    alert_type: str | None = None
    message: str | None = None
    error: str | None = None


class ProcessingSummary(BaseModel):
    budgets_checked: int = 0
    alerts_sent: int = 0
    total_budgets: int = 0


class ProcessingResult(BaseModel):
    success: bool = True
    status: Literal["skipped", "processed"]
    message: str
    budget_checks: list[BudgetCheck] = []
    summary: ProcessingSummary = ProcessingSummary()
    transaction: TransactionIn | None = None


class BudgetImpact(BaseModel):
    budget_id: str
    budget_name: str
    budget_amount: float
    current_spent: float
    transaction_amount: float
    new_total: float
    current_percentage: float
    new_percentage: float
    would_trigger_alert: str | None = None
    currency: str


class PreviewResult(BaseModel):
    budgets: list[BudgetImpact] = []
    total_budgets_affected: int = 0
    alerts_would_trigger: int = 0
    message: str | None = None


class BulkItemResult(BaseModel):
    index: int
    success: bool
    transaction: Any = None
    result: ProcessingResult | None = None
    error: str | None = None


class BulkResult(BaseModel):
    processed_count: int = 0
    success_count: int = 0
    error_count: int = 0
    results: list[BulkItemResult] = []


class RecalculateItem(BaseModel):
    budget_id: str
    budget_name: str
    success: bool
    total_spent: float | None = None
    transaction_count: int | None = None
    error: str | None = None


class RecalculateResult(BaseModel):
    processed_budgets: int = 0
    success_count: int = 0
    results: list[RecalculateItem] = []
