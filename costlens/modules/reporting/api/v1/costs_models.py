from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # The desktop UI consumes camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChartPointResponse(CamelModel):
    name: str
    amount: float


class AnalyticsResponse(CamelModel):
    headers: list[str]
    # service, total, momAmount, momPercentage plus one key per header
    rows: list[dict[str, Any]]


class ForecastPointResponse(CamelModel):
    date: str
    daily_avg: float
    monthly_total: float
    is_forecast: bool


class ServiceTrendResponse(CamelModel):
    service_name: str
    slope: float
    current_daily_avg: float
    last_month_amount: float
    forecast_total: float


class ForecastResponse(CamelModel):
    history: list[ForecastPointResponse]
    forecast: list[ForecastPointResponse]
    total_predicted: float
    current_total: float
    budget: float
    service_breakdown: list[ServiceTrendResponse]


class ServiceBreakdownResponse(CamelModel):
    name: str
    amount: float
    percentage: float
    sparkline: list[float]


class DailyTotalResponse(CamelModel):
    date: str
    amount: float


class DashboardResponse(CamelModel):
    month: str
    records: list[DailyTotalResponse]
    service_breakdown: list[ServiceBreakdownResponse]
    total_cost: float
    budget: float
    exchange_rate: float
