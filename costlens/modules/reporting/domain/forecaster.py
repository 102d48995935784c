"""
Multi-horizon Cost Forecasting

Fits a per-service linear trend to monthly daily-average spend over a lookback
window, projects it month by month to the end of the requested period and
composes the per-service projections into global monthly totals.

Pipeline per request:
1. Load lookback actuals (the complete local calendar months before the
   current one) and drop tax / support line items.
2. Group by service and month; convert each month to a daily average.
3. Fit slope/intercept per service (flat fallback on short histories).
4. Project every month from the current one to the target end, clamping at 0.
5. Scale by the adjustment factor, add the fixed cost spread over a nominal
   month, apply the support markup and expand to the month's real day count.

The engine is deterministic for a given record set and ``today``.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Optional

import pandas as pd
import structlog

from costlens.modules.reporting.domain.exclusions import is_excluded_service
from costlens.modules.reporting.domain.records import (
    BudgetStore,
    CostRecord,
    CostRecordStore,
    normalize_account_id,
)
from costlens.shared.analysis.regression import LinearFit, TrendPoint, fit_linear_trend
from costlens.shared.core.config import get_settings
from costlens.shared.core.dates import (
    build_date,
    days_in_month,
    local_day,
    month_key,
    months_between,
    shift_month,
)

logger = structlog.get_logger()


class ForecastPeriod(str, Enum):
    CURRENT_MONTH = "current_month"
    NEXT_MONTH = "next_month"
    NEXT_QUARTER = "next_quarter"
    NEXT_6_MONTHS = "next_6_months"
    NEXT_12_MONTHS = "next_12_months"
    NEXT_24_MONTHS = "next_24_months"


# Months past the current one covered by each period
PERIOD_MONTH_OFFSETS: dict[ForecastPeriod, int] = {
    ForecastPeriod.CURRENT_MONTH: 0,
    ForecastPeriod.NEXT_MONTH: 1,
    ForecastPeriod.NEXT_QUARTER: 3,
    ForecastPeriod.NEXT_6_MONTHS: 6,
    ForecastPeriod.NEXT_12_MONTHS: 12,
    ForecastPeriod.NEXT_24_MONTHS: 24,
}


@dataclass(frozen=True, slots=True)
class ForecastOptions:
    adjustment_factor: float = 1.0
    additional_fixed_cost: float = 0.0
    period: ForecastPeriod = ForecastPeriod.CURRENT_MONTH

    def __post_init__(self) -> None:
        if not self.adjustment_factor > 0:
            raise ValueError("adjustment_factor must be > 0")
        if not self.additional_fixed_cost >= 0:
            raise ValueError("additional_fixed_cost must be >= 0")
        object.__setattr__(self, "period", ForecastPeriod(self.period))


@dataclass(frozen=True, slots=True)
class ForecastPoint:
    date: str  # YYYY-MM
    daily_avg: float
    monthly_total: float
    is_forecast: bool


@dataclass(frozen=True, slots=True)
class ServiceTrend:
    service_name: str
    slope: float
    current_daily_avg: float
    last_month_amount: float
    forecast_total: float


@dataclass(frozen=True, slots=True)
class ForecastResult:
    history: list[ForecastPoint]
    forecast: list[ForecastPoint]
    total_predicted: float
    current_total: float
    budget: float
    service_breakdown: list[ServiceTrend]


@dataclass(frozen=True, slots=True)
class _ServiceModel:
    name: str
    first_month: tuple[int, int]
    fit: LinearFit
    last_daily_avg: float
    last_month_amount: float


def target_end_month(today: date, period: ForecastPeriod) -> tuple[int, int]:
    """Last (year, month) covered by ``period``, counted in local calendar months."""
    return shift_month(today.year, today.month, PERIOD_MONTH_OFFSETS[period])


def _parse_bucket(key: str) -> tuple[int, int]:
    year, month = key.split("-")
    return int(year), int(month)


class ForecastEngine:
    """
    Per-service trend forecaster.

    Stores are injected; tuning knobs default to the application settings and
    can be overridden per instance.
    """

    def __init__(
        self,
        store: CostRecordStore,
        budgets: BudgetStore,
        *,
        lookback_months: Optional[int] = None,
        min_regression_months: Optional[int] = None,
        support_markup: Optional[float] = None,
        fixed_cost_days: Optional[int] = None,
        excluded_markers: Optional[Iterable[str]] = None,
    ):
        settings = get_settings()
        self.store = store
        self.budgets = budgets
        self.lookback_months = (
            lookback_months
            if lookback_months is not None
            else settings.FORECAST_LOOKBACK_MONTHS
        )
        self.min_regression_months = (
            min_regression_months
            if min_regression_months is not None
            else settings.FORECAST_MIN_REGRESSION_MONTHS
        )
        self.support_markup = (
            support_markup if support_markup is not None else settings.FORECAST_SUPPORT_MARKUP
        )
        self.fixed_cost_days = (
            fixed_cost_days if fixed_cost_days is not None else settings.FORECAST_FIXED_COST_DAYS
        )
        self.excluded_markers = tuple(
            excluded_markers
            if excluded_markers is not None
            else settings.EXCLUDED_SERVICE_MARKERS
        )

    async def calculate_detailed_forecast(
        self,
        account_id: Optional[str],
        options: Optional[ForecastOptions] = None,
        *,
        today: Optional[date] = None,
    ) -> ForecastResult:
        options = options or ForecastOptions()
        today = today or date.today()
        account_filter = normalize_account_id(account_id)

        lookback_y, lookback_m = shift_month(
            today.year, today.month, -self.lookback_months
        )
        lookback_start = build_date(lookback_y, lookback_m, 1, purpose="lookback start")
        # Training stops at the end of the previous month; a partial current
        # month would read as a low daily average.
        end_y, end_m = shift_month(today.year, today.month, -1)
        lookback_end = build_date(
            end_y, end_m, days_in_month(end_y, end_m), purpose="lookback end"
        )

        records = await self.store.fetch_cost_records(
            date_from=lookback_start, date_to=lookback_end, account_id=account_filter
        )
        frame = self._prepare_dataframe(records)

        models = self._fit_service_models(frame)
        forecast, service_breakdown = self._project(models, today, options)
        history = self._build_history(frame)

        total_predicted = sum(p.monthly_total for p in forecast)
        current_total = 0.0
        if options.period is ForecastPeriod.CURRENT_MONTH:
            month_start = build_date(today.year, today.month, 1, purpose="month start")
            mtd_records = await self.store.fetch_cost_records(
                date_from=month_start, date_to=today, account_id=account_filter
            )
            current_total = sum(
                (
                    float(r.amount)
                    for r in mtd_records
                    if not is_excluded_service(r.service, self.excluded_markers)
                ),
                0.0,
            )
            total_predicted += current_total

        # Budget always refers to the current month, whatever the horizon.
        budget = await self.budgets.find_budget(
            month_key(today.year, today.month), account_filter
        )

        logger.info(
            "forecast_calculated",
            account_id=account_filter or "all",
            period=options.period.value,
            lookback_records=len(records),
            services=len(service_breakdown),
            horizon_months=len(forecast),
            total_predicted=round(total_predicted, 2),
        )

        return ForecastResult(
            history=history,
            forecast=forecast,
            total_predicted=total_predicted,
            current_total=current_total,
            budget=float(budget or 0),
            service_breakdown=service_breakdown,
        )

    def _prepare_dataframe(self, records: list[CostRecord]) -> pd.DataFrame:
        """Drops excluded services and tags each record with its local YYYY-MM bucket."""
        data = []
        for r in records:
            if is_excluded_service(r.service, self.excluded_markers):
                continue
            day = local_day(r.date)
            data.append(
                {
                    "service": r.service,
                    "bucket": month_key(day.year, day.month),
                    "y": float(r.amount),
                }
            )
        return pd.DataFrame(data, columns=["service", "bucket", "y"])

    def _fit_service_models(self, frame: pd.DataFrame) -> list[_ServiceModel]:
        monthly: dict[str, list[tuple[tuple[int, int], float]]] = defaultdict(list)
        grouped = frame.groupby(["service", "bucket"], sort=True)["y"].sum()
        for (service, bucket), total in grouped.items():
            monthly[service].append((_parse_bucket(bucket), float(total)))

        models: list[_ServiceModel] = []
        for service, months in monthly.items():
            if not months:
                continue
            first_month = months[0][0]
            points = [
                TrendPoint(
                    x=months_between(first_month, ym),
                    y=total / days_in_month(*ym),
                )
                for ym, total in months
            ]
            last_month, last_total = months[-1]
            last_daily_avg = points[-1].y

            if len(months) >= self.min_regression_months:
                fit = fit_linear_trend(points)
            else:
                fit = LinearFit(slope=0.0, intercept=last_daily_avg)
                logger.debug(
                    "forecast_regression_fallback",
                    service=service,
                    months_observed=len(months),
                )

            models.append(
                _ServiceModel(
                    name=service,
                    first_month=first_month,
                    fit=fit,
                    last_daily_avg=last_daily_avg,
                    last_month_amount=last_total,
                )
            )
        return models

    def _project(
        self,
        models: list[_ServiceModel],
        today: date,
        options: ForecastOptions,
    ) -> tuple[list[ForecastPoint], list[ServiceTrend]]:
        current = (today.year, today.month)
        horizon = months_between(current, target_end_month(today, options.period)) + 1
        target_months = [shift_month(current[0], current[1], i) for i in range(horizon)]

        daily_totals = [0.0] * horizon
        service_totals = {model.name: 0.0 for model in models}
        for model in models:
            for i, ym in enumerate(target_months):
                # Costs cannot be negative
                predicted = max(0.0, model.fit.predict(months_between(model.first_month, ym)))
                daily_totals[i] += predicted
                service_totals[model.name] += (
                    predicted * options.adjustment_factor * days_in_month(*ym)
                )

        fixed_daily = options.additional_fixed_cost / self.fixed_cost_days
        forecast: list[ForecastPoint] = []
        for ym, daily_total in zip(target_months, daily_totals):
            daily_avg = (daily_total * options.adjustment_factor + fixed_daily) * self.support_markup
            forecast.append(
                ForecastPoint(
                    date=month_key(*ym),
                    daily_avg=daily_avg,
                    monthly_total=daily_avg * days_in_month(*ym),
                    is_forecast=True,
                )
            )

        breakdown = [
            ServiceTrend(
                service_name=model.name,
                slope=model.fit.slope,
                current_daily_avg=model.last_daily_avg,
                last_month_amount=model.last_month_amount,
                forecast_total=service_totals[model.name],
            )
            for model in models
        ]
        breakdown.sort(key=lambda trend: trend.forecast_total, reverse=True)
        return forecast, breakdown

    @staticmethod
    def _build_history(frame: pd.DataFrame) -> list[ForecastPoint]:
        history: list[ForecastPoint] = []
        for bucket, total in frame.groupby("bucket", sort=True)["y"].sum().items():
            total = float(total)
            history.append(
                ForecastPoint(
                    date=bucket,
                    daily_avg=total / days_in_month(*_parse_bucket(bucket)),
                    monthly_total=total,
                    is_forecast=False,
                )
            )
        return history
