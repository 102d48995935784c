"""
Month-over-month analytics pivot.

Groups one month of cost records by service and by a time bucket (month or day),
then compares each service's total with the previous calendar month.
All bucket keys and window boundaries use UTC calendar components.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

import structlog

from costlens.modules.reporting.domain.records import (
    CostRecord,
    CostRecordStore,
    normalize_account_id,
)
from costlens.shared.core.dates import (
    coerce_year_month,
    month_window_utc,
    shift_month,
    utc_day,
)

logger = structlog.get_logger()


class Granularity(str, Enum):
    MONTHLY = "monthly"
    DAILY = "daily"


@dataclass(frozen=True, slots=True)
class AnalyticsRow:
    service: str
    total: float
    mom_amount: float
    mom_percentage: float
    # bucket key -> amount; keys with no activity for this service are absent
    values: dict[str, float] = field(default_factory=dict)

    def as_pivot(self) -> dict[str, Any]:
        """Flat row with one column per bucket key, as rendered by the pivot table."""
        return {
            "service": self.service,
            "total": self.total,
            "momAmount": self.mom_amount,
            "momPercentage": self.mom_percentage,
            **self.values,
        }


@dataclass(frozen=True, slots=True)
class AnalyticsResult:
    headers: list[str]
    rows: list[AnalyticsRow]


def bucket_key(value: date | datetime, granularity: Granularity) -> str:
    day = utc_day(value)
    if granularity is Granularity.MONTHLY:
        return f"{day.year:04d}-{day.month:02d}"
    return day.isoformat()


def pivot_records(
    current: list[CostRecord],
    previous: list[CostRecord],
    granularity: Granularity,
) -> AnalyticsResult:
    """
    Pure pivot step: current-window records become rows, previous-window records
    only contribute a per-service total for the month-over-month columns.
    """
    headers: set[str] = set()
    by_service: dict[str, dict[str, float]] = {}
    totals: dict[str, float] = {}

    for r in current:
        key = bucket_key(r.date, granularity)
        headers.add(key)
        amount = float(r.amount)
        buckets = by_service.setdefault(r.service, {})
        buckets[key] = buckets.get(key, 0.0) + amount
        totals[r.service] = totals.get(r.service, 0.0) + amount

    previous_totals: dict[str, float] = {}
    for r in previous:
        previous_totals[r.service] = previous_totals.get(r.service, 0.0) + float(r.amount)

    rows: list[AnalyticsRow] = []
    for service, buckets in by_service.items():
        total = totals[service]
        previous_total = previous_totals.get(service, 0.0)
        mom_amount = total - previous_total
        # New services report 0% rather than an infinite increase.
        mom_percentage = (mom_amount / previous_total) * 100 if previous_total > 0 else 0.0
        rows.append(
            AnalyticsRow(
                service=service,
                total=total,
                mom_amount=mom_amount,
                mom_percentage=mom_percentage,
                values=dict(buckets),
            )
        )

    rows.sort(key=lambda row: row.total, reverse=True)
    return AnalyticsResult(headers=sorted(headers), rows=rows)


class AnalyticsAggregator:
    """Builds the analytics pivot for one month from an injected record store."""

    def __init__(self, store: CostRecordStore):
        self.store = store

    async def get_analytics_data(
        self,
        account_id: Optional[str],
        year: int | str,
        month: int | str,
        granularity: Granularity | str,
    ) -> AnalyticsResult:
        granularity = Granularity(granularity)
        y, m = coerce_year_month(year, month)
        account_filter = normalize_account_id(account_id)

        current_start, current_end = month_window_utc(y, m)
        prev_y, prev_m = shift_month(y, m, -1)
        previous_start, previous_end = month_window_utc(prev_y, prev_m)

        current = await self.store.fetch_cost_records(
            date_from=current_start, date_to=current_end, account_id=account_filter
        )
        previous = await self.store.fetch_cost_records(
            date_from=previous_start, date_to=previous_end, account_id=account_filter
        )

        result = pivot_records(current, previous, granularity)
        logger.info(
            "analytics_computed",
            account_id=account_filter or "all",
            month=f"{y:04d}-{m:02d}",
            granularity=granularity.value,
            current_records=len(current),
            previous_records=len(previous),
            services=len(result.rows),
        )
        return result
