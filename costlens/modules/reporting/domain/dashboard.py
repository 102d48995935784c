from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

import structlog

from costlens.modules.reporting.domain.records import (
    AccountStore,
    BudgetStore,
    CostRecordStore,
    normalize_account_id,
)
from costlens.shared.core.config import get_settings
from costlens.shared.core.dates import (
    build_date,
    coerce_year_month,
    days_in_month,
    month_key,
    utc_day,
)

logger = structlog.get_logger()

# Provider-side rollup rows duplicate the per-service rows
ROLLUP_SERVICE = "Total"
TAX_SERVICE = "Tax"


@dataclass(frozen=True, slots=True)
class ServiceBreakdown:
    name: str
    amount: float
    percentage: float
    sparkline: list[float]


@dataclass(frozen=True, slots=True)
class DailyTotal:
    date: str  # YYYY-MM-DD
    amount: float


@dataclass(frozen=True, slots=True)
class DashboardData:
    month: str
    records: list[DailyTotal]
    service_breakdown: list[ServiceBreakdown]
    total_cost: float
    budget: float
    exchange_rate: float


class DashboardService:
    """Month summary for the landing page: daily chart, service table and budget."""

    def __init__(
        self,
        store: CostRecordStore,
        accounts: AccountStore,
        budgets: BudgetStore,
        *,
        default_exchange_rate: Optional[float] = None,
    ):
        self.store = store
        self.accounts = accounts
        self.budgets = budgets
        self.default_exchange_rate = (
            default_exchange_rate
            if default_exchange_rate is not None
            else get_settings().DEFAULT_EXCHANGE_RATE
        )

    async def get_dashboard_data(
        self,
        account_id: Optional[str],
        month: Optional[str] = None,
        *,
        today: Optional[date] = None,
    ) -> DashboardData:
        if month:
            year_part, _, month_part = month.partition("-")
            y, m = coerce_year_month(year_part, month_part)
        else:
            today = today or date.today()
            y, m = today.year, today.month
        account_filter = normalize_account_id(account_id)

        records = await self.store.fetch_cost_records(
            date_from=build_date(y, m, 1, purpose="month start"),
            date_to=build_date(y, m, days_in_month(y, m), purpose="month end"),
            account_id=account_filter,
        )

        per_service: dict[str, dict[str, float]] = {}
        daily: dict[str, float] = {}
        for r in records:
            if r.service in (ROLLUP_SERVICE, TAX_SERVICE):
                continue
            day_key = utc_day(r.date).isoformat()
            amount = float(r.amount)
            service_days = per_service.setdefault(r.service, {})
            service_days[day_key] = service_days.get(day_key, 0.0) + amount
            daily[day_key] = daily.get(day_key, 0.0) + amount

        total_cost = sum(daily.values(), 0.0)
        breakdown = []
        for name, days in per_service.items():
            amount = sum(days.values(), 0.0)
            breakdown.append(
                ServiceBreakdown(
                    name=name,
                    amount=amount,
                    percentage=(amount / total_cost) * 100 if total_cost > 0 else 0.0,
                    sparkline=[days[k] for k in sorted(days)],
                )
            )
        breakdown.sort(key=lambda item: item.amount, reverse=True)

        budget, exchange_rate = await self._resolve_budget(month_key(y, m), account_filter)

        logger.info(
            "dashboard_computed",
            account_id=account_filter or "all",
            month=month_key(y, m),
            records=len(records),
            services=len(breakdown),
        )

        return DashboardData(
            month=month_key(y, m),
            records=[DailyTotal(date=k, amount=daily[k]) for k in sorted(daily)],
            service_breakdown=breakdown,
            total_cost=total_cost,
            budget=budget,
            exchange_rate=exchange_rate,
        )

    async def _resolve_budget(
        self, month: str, account_id: Optional[str]
    ) -> tuple[float, float]:
        """Monthly override first, then the account's base budget (or the sum of all)."""
        override = await self.budgets.find_budget(month, account_id)
        exchange_rate = self.default_exchange_rate

        if account_id:
            account = await self.accounts.get_account(account_id)
            base_budget = account.budget if account else 0.0
            if account:
                exchange_rate = account.exchange_rate
        else:
            accounts = await self.accounts.list_accounts()
            base_budget = sum((a.budget for a in accounts), 0.0)
            if accounts:
                exchange_rate = accounts[0].exchange_rate

        budget = float(override) if override is not None else float(base_budget)
        return budget, exchange_rate
