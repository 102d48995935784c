from uuid import uuid4
from datetime import date
from decimal import Decimal
from sqlalchemy import (
    String,
    ForeignKey,
    Numeric,
    Date,
    Float,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from typing import List, Optional
from costlens.shared.db.base import Base


def _new_id() -> str:
    return str(uuid4())


class CloudAccount(Base):
    __tablename__ = "cloud_accounts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String)  # e.g., "Production AWS"
    # 12-digit AWS account number
    provider_account_id: Mapped[str] = mapped_column(String, unique=True)
    profile_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    # Base monthly budget, overridden per month by Budget rows
    budget: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=Decimal("0"))
    exchange_rate: Mapped[float] = mapped_column(Float, default=150.0)

    cost_records: Mapped[List["CostRecord"]] = relationship(back_populates="account")


class CostRecord(Base):
    __tablename__ = "cost_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    account_id: Mapped[str] = mapped_column(
        ForeignKey("cloud_accounts.id"), nullable=False, index=True
    )
    recorded_at: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    service: Mapped[str] = mapped_column(String, index=True)  # e.g., "Amazon Elastic Compute Cloud - Compute"
    record_type: Mapped[str] = mapped_column(String, default="AmortizedCost")

    # Financials (DECIMAL for money!)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 8))

    account: Mapped["CloudAccount"] = relationship(back_populates="cost_records")

    __table_args__ = (
        UniqueConstraint(
            "recorded_at",
            "account_id",
            "service",
            "record_type",
            name="uix_account_cost_granularity",
        ),
    )


class Budget(Base):
    """Monthly budget override. A null account_id is the all-accounts budget."""

    __tablename__ = "budgets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    month: Mapped[str] = mapped_column(String(7), index=True)  # YYYY-MM
    account_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("cloud_accounts.id"), nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2))

    __table_args__ = (
        UniqueConstraint("month", "account_id", name="uix_budget_month_account"),
    )
