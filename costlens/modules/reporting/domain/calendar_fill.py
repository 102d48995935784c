from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping

from costlens.shared.core.dates import coerce_year_month, days_in_month, local_day

# Fixed English labels; calendar.month_abbr follows the process locale.
_MONTH_ABBR = (
    "", "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@dataclass(frozen=True, slots=True)
class DailyCost:
    date: date | datetime | str
    amount: Decimal | float


@dataclass(frozen=True, slots=True)
class ChartPoint:
    name: str  # "Jan 1"
    amount: float


def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record[name]
    return getattr(record, name)


def fill_daily_costs(records: Iterable[Any], year: int, month: int) -> list[ChartPoint]:
    """
    One point per calendar day of ``year``/``month``, zero where nothing was recorded.

    Records are matched on their local calendar day. When two records fall on
    the same day the later one replaces the earlier one; amounts are not summed.
    Records outside the month are ignored.
    """
    year, month = coerce_year_month(year, month)

    cost_map: dict[date, float] = {}
    for record in records:
        cost_map[local_day(_field(record, "date"))] = float(_field(record, "amount"))

    points: list[ChartPoint] = []
    for day in range(1, days_in_month(year, month) + 1):
        points.append(
            ChartPoint(
                name=f"{_MONTH_ABBR[month]} {day}",
                amount=cost_map.get(date(year, month, day), 0.0),
            )
        )
    return points
