"""测试公共 Fixtures：内存 SQLite + 固定时钟 + 独立 TestClient"""

import uuid
from datetime import date, datetime
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

import budget_alert.models  # noqa: F401
from budget_alert.database import Base, get_db, enable_sqlite_savepoints
from budget_alert.models.budget import Budget
from budget_alert.models.category import Category
from budget_alert.models.preference import NotificationPreference
from budget_alert.models.transaction import Transaction
from budget_alert.models.user import User
from budget_alert.utils.clock import FixedClock
from budget_alert.utils.deps import get_clock

# 2026-03-15 (周日) 中午
NOW = datetime(2026, 3, 15, 12, 0, 0)
MONTH_START = date(2026, 3, 1)
MONTH_END = date(2026, 3, 31)


# ──────────── 内存数据库引擎 ────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    """每个测试独立的内存库"""
    test_engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
    enable_sqlite_savepoints(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    """Service 层测试直接使用的会话"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


# ──────────── FastAPI TestClient ────────────

@pytest_asyncio.fixture
async def client(session_factory, clock):
    from budget_alert.main import app

    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ──────────── 造数 helpers ────────────

async def add_user(db: AsyncSession, email: str = "test@example.com", **kwargs) -> User:
    user = User(id=str(uuid.uuid4()), email=email, first_name="Test", last_name="User", **kwargs)
    db.add(user)
    await db.flush()
    return user


async def add_category(db: AsyncSession, name: str = "Food") -> Category:
    category = Category(id=str(uuid.uuid4()), name=name, type="expense")
    db.add(category)
    await db.flush()
    return category


async def add_budget(
    db: AsyncSession,
    user_id: str,
    category_id: str | None,
    amount: str = "500",
    **kwargs,
) -> Budget:
    fields = dict(
        name="Monthly Food",
        period_type="monthly",
        start_date=MONTH_START,
        end_date=MONTH_END,
        currency="USD",
        warning_threshold_pct=80,
    )
    fields.update(kwargs)
    budget = Budget(
        id=str(uuid.uuid4()),
        user_id=user_id,
        category_id=category_id,
        amount=Decimal(amount),
        **fields,
    )
    db.add(budget)
    await db.flush()
    return budget


async def add_transaction(
    db: AsyncSession,
    user_id: str,
    category_id: str | None,
    amount: str,
    transaction_date: date = NOW.date(),
    transaction_type: str = "expense",
) -> Transaction:
    tx = Transaction(
        id=str(uuid.uuid4()),
        user_id=user_id,
        category_id=category_id,
        amount=Decimal(amount),
        transaction_type=transaction_type,
        transaction_date=transaction_date,
    )
    db.add(tx)
    await db.flush()
    return tx


async def add_preference(db: AsyncSession, user_id: str, **kwargs) -> NotificationPreference:
    pref = NotificationPreference(user_id=user_id, **kwargs)
    db.add(pref)
    await db.flush()
    return pref


# ──────────── 常用组合 ────────────

@pytest_asyncio.fixture
async def food_setup(db):
    """用户 + 餐饮分类 + 500 美元月度预算（80% 预警）"""
    user = await add_user(db)
    category = await add_category(db, "Food")
    budget = await add_budget(db, user.id, category.id)
    return user, category, budget


@pytest_asyncio.fixture
async def seeded(session_factory):
    """API 测试用：提交后关闭会话，避免与请求会话共享连接时事务嵌套"""
    async with session_factory() as s:
        user = await add_user(s)
        category = await add_category(s, "Food")
        budget = await add_budget(s, user.id, category.id)
        await s.commit()
    return user, category, budget
