"""时间来源：预警冷却与周期计算统一从这里取“现在”，便于测试模拟时间流逝"""

from datetime import date, datetime, timedelta, timezone


class Clock:
    """系统时钟，返回不带时区的 UTC 时间（与数据库中的 DateTime 列保持一致）"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()


class FixedClock(Clock):
    """固定时钟，可手动推进"""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


system_clock = Clock()
