from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from costlens.shared.db.session import get_db
from costlens.modules.reporting.api.v1.costs_models import (
    AnalyticsResponse,
    ChartPointResponse,
    DashboardResponse,
    ForecastResponse,
)
from costlens.modules.reporting.domain.analytics import AnalyticsAggregator, Granularity
from costlens.modules.reporting.domain.calendar_fill import fill_daily_costs
from costlens.modules.reporting.domain.dashboard import DashboardService
from costlens.modules.reporting.domain.forecaster import (
    ForecastEngine,
    ForecastOptions,
    ForecastPeriod,
)
from costlens.modules.reporting.domain.persistence import SQLAlchemyCostStore

router = APIRouter(tags=["Costs"])


def get_cost_store(db: AsyncSession = Depends(get_db)) -> SQLAlchemyCostStore:
    return SQLAlchemyCostStore(db)


@router.get("/daily", response_model=list[ChartPointResponse])
async def get_daily_costs(
    year: int = Query(..., ge=1, le=9999),
    month: int = Query(..., ge=1, le=12),
    account_id: Optional[str] = None,
    store: SQLAlchemyCostStore = Depends(get_cost_store),
) -> list[ChartPointResponse]:
    """Day-by-day totals for one month, zero-filled for the chart."""
    dashboard = await DashboardService(store, store, store).get_dashboard_data(
        account_id, f"{year:04d}-{month:02d}"
    )
    return [
        ChartPointResponse(name=p.name, amount=p.amount)
        for p in fill_daily_costs(dashboard.records, year, month)
    ]


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics(
    year: int = Query(..., ge=1, le=9999),
    month: int = Query(..., ge=1, le=12),
    granularity: Granularity = Granularity.MONTHLY,
    account_id: Optional[str] = None,
    store: SQLAlchemyCostStore = Depends(get_cost_store),
) -> AnalyticsResponse:
    """Per-service pivot for one month with month-over-month deltas."""
    result = await AnalyticsAggregator(store).get_analytics_data(
        account_id, year, month, granularity
    )
    return AnalyticsResponse(
        headers=result.headers, rows=[row.as_pivot() for row in result.rows]
    )


@router.get("/forecast", response_model=ForecastResponse)
async def get_forecast(
    period: ForecastPeriod = ForecastPeriod.CURRENT_MONTH,
    adjustment_factor: float = Query(1.0, gt=0),
    additional_fixed_cost: float = Query(0.0, ge=0),
    account_id: Optional[str] = None,
    store: SQLAlchemyCostStore = Depends(get_cost_store),
) -> ForecastResponse:
    """Trend forecast to the end of the selected period, with budget for comparison."""
    options = ForecastOptions(
        adjustment_factor=adjustment_factor,
        additional_fixed_cost=additional_fixed_cost,
        period=period,
    )
    result = await ForecastEngine(store, store).calculate_detailed_forecast(
        account_id, options
    )
    return ForecastResponse.model_validate(asdict(result))


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    month: Optional[str] = Query(default=None, pattern=r"^\d{4}-\d{2}$"),
    account_id: Optional[str] = None,
    store: SQLAlchemyCostStore = Depends(get_cost_store),
) -> DashboardResponse:
    data = await DashboardService(store, store, store).get_dashboard_data(
        account_id, month
    )
    return DashboardResponse.model_validate(asdict(data))


@router.get("/months", response_model=list[str])
async def get_available_months(
    account_id: Optional[str] = None,
    store: SQLAlchemyCostStore = Depends(get_cost_store),
) -> list[str]:
    return await store.available_months(account_id)
