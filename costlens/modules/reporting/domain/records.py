"""
Cost record value type and the collaborator contracts the reporting engines read through.

Engines receive their stores through the constructor; nothing here holds a
process-wide connection. Implementations live in ``persistence.py`` (SQLAlchemy)
and in the test suite (in-memory fakes).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Protocol

ALL_ACCOUNTS = "all"


@dataclass(frozen=True, slots=True)
class CostRecord:
    date: date | datetime
    amount: Decimal | float
    service: str
    account_id: str
    record_type: str = "AmortizedCost"


@dataclass(frozen=True, slots=True)
class AccountInfo:
    id: str
    name: str
    budget: float
    exchange_rate: float
    provider_account_id: str = ""
    profile_name: Optional[str] = None


def normalize_account_id(account_id: Optional[str]) -> Optional[str]:
    """Map the "all accounts" sentinel (or absence) to ``None``."""
    if not account_id or account_id == ALL_ACCOUNTS:
        return None
    return account_id


class CostRecordStore(Protocol):
    async def fetch_cost_records(
        self,
        *,
        date_from: date | datetime,
        date_to: date | datetime,
        account_id: Optional[str] = None,
    ) -> list[CostRecord]:
        """Records dated within [date_from, date_to] inclusive, optionally for one account."""
        ...


class BudgetStore(Protocol):
    async def find_budget(self, month: str, account_id: Optional[str]) -> Optional[float]:
        """Budget for ``YYYY-MM``; ``account_id=None`` is the all-accounts budget."""
        ...


class AccountStore(Protocol):
    async def get_account(self, account_id: str) -> Optional[AccountInfo]:
        ...

    async def list_accounts(self) -> list[AccountInfo]:
        ...


class AccountSettingsStore(AccountStore, Protocol):
    async def add_account(
        self, name: str, provider_account_id: str, profile_name: Optional[str] = None
    ) -> AccountInfo:
        ...

    async def update_account_settings(
        self,
        account_id: str,
        *,
        budget: float,
        exchange_rate: float,
        profile_name: Optional[str] = None,
    ) -> AccountInfo:
        """Replace budget and exchange rate; ``profile_name=None`` keeps the current profile."""
        ...
