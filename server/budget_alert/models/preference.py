from sqlalchemy import String, ForeignKey, Boolean, Integer
from sqlalchemy.orm import Mapped, mapped_column

from budget_alert.database import Base


class NotificationPreference(Base):
    __tablename__ = "notification_preferences"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), primary_key=True
    )
    email_alerts: Mapped[bool] = mapped_column(Boolean, default=True)
    # 用户自定义阈值（百分比）；为空时使用预算自身的阈值
    threshold_warning: Mapped[int | None] = mapped_column(Integer)
    # 仅保存，当前判定逻辑固定使用 100
    threshold_critical: Mapped[int | None] = mapped_column(Integer)
