import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from budget_alert.config import settings
from budget_alert.database import init_db
from budget_alert.errors import BudgetAlertError, ValidationError
from budget_alert.routers import alerts, budgets, transactions
from budget_alert.utils.responses import error_content, success_response

# 导入所有 model 使 SQLAlchemy 注册表结构
import budget_alert.models  # noqa: F401

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期：配置日志，启动时建表"""
    logging.basicConfig(level=settings.LOG_LEVEL)
    await init_db()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="预算预警服务 - 交易入账后检查预算阈值并生成预警",
    lifespan=lifespan,
)

# CORS 中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# 统一异常处理
@app.exception_handler(BudgetAlertError)
async def budget_alert_error_handler(request: Request, exc: BudgetAlertError):
    errors = exc.errors if isinstance(exc, ValidationError) else None
    return JSONResponse(status_code=exc.status_code, content=error_content(exc.detail, errors))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=error_content("Validation failed", errors))


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content=error_content(str(exc)))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(f"[预算预警] 未处理异常: {request.url.path}")
    return JSONResponse(status_code=500, content=error_content("Internal Server Error"))


# 注册路由
app.include_router(transactions.router)
app.include_router(alerts.router)
app.include_router(budgets.router)


@app.get("/health", tags=["系统"])
async def health_check():
    """健康检查接口"""
    return success_response(
        {
            "status": "ok",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
        },
        "Service is healthy",
    )
