"""
SQLAlchemy-backed record, budget and account store.

Implements the store contracts in ``records.py`` over an ``AsyncSession``.
Database failures are logged and re-raised as ``UpstreamFetchError``; the
engines above pass them through untouched.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from costlens.models.cloud import Budget, CloudAccount, CostRecord as CostRecordModel
from costlens.modules.reporting.domain.records import (
    AccountInfo,
    CostRecord,
    normalize_account_id,
)
from costlens.shared.core.config import get_settings
from costlens.shared.core.dates import month_key, utc_day
from costlens.shared.core.exceptions import (
    DuplicateAccountError,
    ResourceNotFoundError,
    UpstreamFetchError,
)

logger = structlog.get_logger()


def _to_account_info(account: CloudAccount) -> AccountInfo:
    return AccountInfo(
        id=account.id,
        name=account.name,
        budget=float(account.budget or 0),
        exchange_rate=float(account.exchange_rate),
        provider_account_id=account.provider_account_id,
        profile_name=account.profile_name,
    )


class SQLAlchemyCostStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def fetch_cost_records(
        self,
        *,
        date_from: date | datetime,
        date_to: date | datetime,
        account_id: Optional[str] = None,
    ) -> list[CostRecord]:
        # recorded_at is a calendar day; datetime bounds are reduced to their UTC day
        stmt = select(CostRecordModel).where(
            CostRecordModel.recorded_at >= utc_day(date_from),
            CostRecordModel.recorded_at <= utc_day(date_to),
        )
        account_id = normalize_account_id(account_id)
        if account_id:
            stmt = stmt.where(CostRecordModel.account_id == account_id)
        stmt = stmt.order_by(CostRecordModel.recorded_at.asc())

        try:
            result = await self.db.execute(stmt)
            rows = result.scalars().all()
        except SQLAlchemyError as exc:
            logger.error(
                "cost_store_query_failed",
                date_from=str(date_from),
                date_to=str(date_to),
                account_id=account_id or "all",
                error=str(exc),
            )
            raise UpstreamFetchError(
                "Failed to load cost records",
                details={"date_from": str(date_from), "date_to": str(date_to)},
            ) from exc

        return [
            CostRecord(
                date=r.recorded_at,
                amount=r.amount,
                service=r.service,
                account_id=r.account_id,
                record_type=r.record_type,
            )
            for r in rows
        ]

    async def find_budget(self, month: str, account_id: Optional[str]) -> Optional[float]:
        account_id = normalize_account_id(account_id)
        stmt = select(Budget.amount).where(Budget.month == month)
        if account_id:
            stmt = stmt.where(Budget.account_id == account_id)
        else:
            stmt = stmt.where(Budget.account_id.is_(None))

        try:
            amount = await self.db.scalar(stmt.limit(1))
        except SQLAlchemyError as exc:
            logger.error("budget_lookup_failed", month=month, error=str(exc))
            raise UpstreamFetchError(
                "Failed to load budget", details={"month": month}
            ) from exc
        return float(amount) if amount is not None else None

    async def get_account(self, account_id: str) -> Optional[AccountInfo]:
        try:
            account = await self.db.get(CloudAccount, account_id)
        except SQLAlchemyError as exc:
            logger.error("account_lookup_failed", account_id=account_id, error=str(exc))
            raise UpstreamFetchError(
                "Failed to load account", details={"account_id": account_id}
            ) from exc
        return _to_account_info(account) if account else None

    async def list_accounts(self) -> list[AccountInfo]:
        try:
            result = await self.db.execute(
                select(CloudAccount).order_by(CloudAccount.name.asc())
            )
            accounts = result.scalars().all()
        except SQLAlchemyError as exc:
            logger.error("account_list_failed", error=str(exc))
            raise UpstreamFetchError("Failed to list accounts") from exc
        return [_to_account_info(a) for a in accounts]

    async def available_months(self, account_id: Optional[str] = None) -> list[str]:
        """Distinct YYYY-MM values holding records, newest first."""
        stmt = select(CostRecordModel.recorded_at).distinct()
        account_id = normalize_account_id(account_id)
        if account_id:
            stmt = stmt.where(CostRecordModel.account_id == account_id)

        try:
            result = await self.db.execute(stmt)
            days = result.scalars().all()
        except SQLAlchemyError as exc:
            logger.error("available_months_failed", error=str(exc))
            raise UpstreamFetchError("Failed to list available months") from exc
        return sorted({month_key(d.year, d.month) for d in days}, reverse=True)

    async def add_account(
        self, name: str, provider_account_id: str, profile_name: Optional[str] = None
    ) -> AccountInfo:
        account = CloudAccount(
            name=name,
            provider_account_id=provider_account_id,
            profile_name=profile_name,
            budget=Decimal("0"),
            exchange_rate=get_settings().DEFAULT_EXCHANGE_RATE,
        )
        self.db.add(account)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise DuplicateAccountError(
                f"Account {provider_account_id} is already registered",
                details={"provider_account_id": provider_account_id},
            ) from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("account_create_failed", name=name, error=str(exc))
            raise UpstreamFetchError("Failed to save account") from exc

        logger.info("account_created", account_id=account.id, name=name)
        return _to_account_info(account)

    async def update_account_settings(
        self,
        account_id: str,
        *,
        budget: float,
        exchange_rate: float,
        profile_name: Optional[str] = None,
    ) -> AccountInfo:
        try:
            account = await self.db.get(CloudAccount, account_id)
            if account is None:
                raise ResourceNotFoundError(
                    f"Account {account_id} not found", details={"account_id": account_id}
                )
            account.budget = Decimal(str(budget))
            account.exchange_rate = exchange_rate
            if profile_name is not None:
                account.profile_name = profile_name
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("account_update_failed", account_id=account_id, error=str(exc))
            raise UpstreamFetchError(
                "Failed to save account settings", details={"account_id": account_id}
            ) from exc

        logger.info(
            "account_settings_updated",
            account_id=account_id,
            budget=budget,
            exchange_rate=exchange_rate,
        )
        return _to_account_info(account)
