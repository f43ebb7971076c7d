from pydantic_settings import BaseSettings
from pathlib import Path


class Settings(BaseSettings):
    # 项目信息
    APP_NAME: str = "Budget Alert Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # 数据库
    DATABASE_DIR: Path = Path(__file__).resolve().parent.parent / "data"
    DATABASE_NAME: str = "budget_alert.db"

    @property
    def DATABASE_URL(self) -> str:
        self.DATABASE_DIR.mkdir(parents=True, exist_ok=True)
        return f"sqlite+aiosqlite:///{self.DATABASE_DIR / self.DATABASE_NAME}"

    # 预警判定
    ALERT_COOLDOWN_HOURS: int = 24  # 同类型预警冷却时间
    ALERT_SPENDING_DELTA_PCT: float = 5  # 冷却期内支出再增长多少个百分点（占预算）可重新预警
    DEFAULT_WARNING_THRESHOLD: int = 80
    CRITICAL_THRESHOLD: int = 100
    DEFAULT_CURRENCY: str = "USD"

    # 批量处理
    BULK_MAX_TRANSACTIONS: int = 100

    # 邮件（当前停用，只记录预警）
    EMAIL_ENABLED: bool = False
    DASHBOARD_URL: str = "http://localhost:3000/dashboard"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
