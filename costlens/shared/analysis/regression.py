from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True, slots=True)
class TrendPoint:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class LinearFit:
    slope: float
    intercept: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


def fit_linear_trend(points: Sequence[TrendPoint]) -> LinearFit:
    """
    Ordinary least squares fit of y = slope * x + intercept.

        slope     = (n*Sxy - Sx*Sy) / (n*Sxx - Sx^2)
        intercept = (Sy - slope*Sx) / n

    Fewer than two points give a flat line through the single y (or 0).
    Two or more points sharing one x make the denominator zero; that is also
    treated as flat, through the mean of y.
    """
    n = len(points)
    if n == 0:
        return LinearFit(slope=0.0, intercept=0.0)
    if n == 1:
        return LinearFit(slope=0.0, intercept=float(points[0].y))

    sum_x = 0.0
    sum_y = 0.0
    sum_xy = 0.0
    sum_xx = 0.0
    for p in points:
        sum_x += p.x
        sum_y += p.y
        sum_xy += p.x * p.y
        sum_xx += p.x * p.x

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        return LinearFit(slope=0.0, intercept=sum_y / n)

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return LinearFit(slope=slope, intercept=intercept)
