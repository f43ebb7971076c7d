from datetime import datetime

from pydantic import BaseModel


class AlertResponse(BaseModel):
    id: str
    budget_id: str
    user_id: str
    alert_type: str
    current_spent: float
    budget_amount: float
    percentage_used: float
    message: str
    is_read: bool
    email_sent: bool
    created_at: datetime
    read_at: datetime | None = None
    budget_name: str | None = None
    category_name: str | None = None

    model_config = {"from_attributes": True}


class AlertCheckResult(BaseModel):
    success: bool = True
    message: str
    alert: AlertResponse | None = None


class UnreadCount(BaseModel):
    unread_count: int


class MarkAllReadResult(BaseModel):
    marked_count: int


class AlertStats(BaseModel):
    total_alerts: int = 0
    unread_alerts: int = 0
    alerts_by_type: dict[str, int] = {}
    emails_sent: int = 0
    alerts_this_week: int = 0
    alerts_this_month: int = 0
