"""
Global pytest fixtures for the CostLens test suite.

Provides:
- In-memory record/budget/account store for engine tests
- Async SQLite database session for persistence tests
- FastAPI async client with the cost store overridden
"""
import os
from dataclasses import replace
from datetime import date, datetime, time, timezone
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio

# Set test environment BEFORE any app imports
os.environ["TESTING"] = "true"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "development"

from costlens.modules.reporting.domain.records import (  # noqa: E402
    AccountInfo,
    CostRecord,
    normalize_account_id,
)
from costlens.shared.core.exceptions import (  # noqa: E402
    DuplicateAccountError,
    ResourceNotFoundError,
)


def _as_utc_datetime(value, *, end_of_day: bool = False) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime.combine(value, time.max if end_of_day else time.min, tzinfo=timezone.utc)


class FakeCostStore:
    """
    In-memory stand-in for SQLAlchemyCostStore.

    Applies the same inclusive range and account filter and records every call
    so tests can assert on the windows an engine asked for.
    """

    def __init__(
        self,
        records: Optional[list[CostRecord]] = None,
        *,
        budgets: Optional[dict] = None,
        accounts: Optional[list[AccountInfo]] = None,
        error: Optional[Exception] = None,
    ):
        self.records = list(records or [])
        self.budgets = dict(budgets or {})
        self.accounts = list(accounts or [])
        self.error = error
        self.calls: list[dict] = []
        self.budget_calls: list[tuple] = []

    async def fetch_cost_records(self, *, date_from, date_to, account_id=None):
        self.calls.append(
            {"date_from": date_from, "date_to": date_to, "account_id": account_id}
        )
        if self.error is not None:
            raise self.error
        start = _as_utc_datetime(date_from)
        end = _as_utc_datetime(date_to, end_of_day=True)
        account_id = normalize_account_id(account_id)
        return [
            r
            for r in self.records
            if start <= _as_utc_datetime(r.date) <= end
            and (account_id is None or r.account_id == account_id)
        ]

    async def find_budget(self, month, account_id):
        self.budget_calls.append((month, account_id))
        if self.error is not None:
            raise self.error
        return self.budgets.get((month, account_id))

    async def get_account(self, account_id):
        return next((a for a in self.accounts if a.id == account_id), None)

    async def list_accounts(self):
        return list(self.accounts)

    async def add_account(self, name, provider_account_id, profile_name=None):
        if any(a.provider_account_id == provider_account_id for a in self.accounts):
            raise DuplicateAccountError(f"Account {provider_account_id} is already registered")
        account = AccountInfo(
            id=f"acc-{len(self.accounts) + 1}",
            name=name,
            budget=0.0,
            exchange_rate=150.0,
            provider_account_id=provider_account_id,
            profile_name=profile_name,
        )
        self.accounts.append(account)
        return account

    async def update_account_settings(
        self, account_id, *, budget, exchange_rate, profile_name=None
    ):
        current = await self.get_account(account_id)
        if current is None:
            raise ResourceNotFoundError(f"Account {account_id} not found")
        updated = replace(
            current,
            budget=budget,
            exchange_rate=exchange_rate,
            profile_name=profile_name if profile_name is not None else current.profile_name,
        )
        self.accounts[self.accounts.index(current)] = updated
        return updated

    async def available_months(self, account_id=None):
        account_id = normalize_account_id(account_id)
        months = {
            f"{r.date.year:04d}-{r.date.month:02d}"
            for r in self.records
            if account_id is None or r.account_id == account_id
        }
        return sorted(months, reverse=True)


def make_record(day, amount, service="Amazon EC2", account_id="acc-1"):
    return CostRecord(date=day, amount=amount, service=service, account_id=account_id)


@pytest.fixture
def record():
    """Factory for domain cost records."""
    return make_record


@pytest.fixture
def fake_store():
    """Factory building an in-memory store: fake_store(records, budgets=..., accounts=...)."""
    return FakeCostStore


@pytest.fixture
def today() -> date:
    """Pinned "today" so lookback windows are deterministic."""
    return date(2026, 10, 19)


@pytest.fixture(autouse=True)
def _fresh_settings():
    from costlens.shared.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================================================
# Async Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def async_engine(tmp_path):
    """Create async SQLite engine for testing using a temporary file."""
    from sqlalchemy.ext.asyncio import create_async_engine

    db_url = f"sqlite+aiosqlite:///{tmp_path / 'costlens_test.sqlite'}"
    engine = create_async_engine(db_url, echo=False)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine) -> AsyncGenerator:
    """Create database tables and provide async session."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from costlens.shared.db.base import Base
    import costlens.models  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


# ============================================================================
# FastAPI Test Client Fixtures
# ============================================================================

@pytest.fixture
def app():
    from costlens.main import app as costlens_app

    return costlens_app


@pytest.fixture
def api_store():
    """Store served to the API under test; tests fill it before issuing requests."""
    return FakeCostStore()


@pytest_asyncio.fixture
async def async_client(app, api_store) -> AsyncGenerator:
    """Async test client for FastAPI. Overrides the cost store dependency."""
    from httpx import AsyncClient, ASGITransport
    from costlens.modules.reporting.api.v1.costs import get_cost_store

    app.dependency_overrides[get_cost_store] = lambda: api_store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.pop(get_cost_store, None)
