r"""backend\forecast_engine\services\forecasting_service.py

Short-horizon demand forecasting over a daily revenue series.

The implementation is intentionally plain: the daily mean is extrapolated
over the horizon, the interval is widened by the sample standard deviation
scaled with ``sqrt(horizon)``, and the trend compares the older and newer
halves of the series.  Every number can be reproduced by hand, which is
what business owners reading the dashboard need.
"""

from __future__ import annotations

import logging
from math import sqrt
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..core.errors import InvalidInput, require_non_negative, require_positive_int
from ..models.schemas import ConfidenceInterval, DemandForecast, DemandTrend

LOGGER = logging.getLogger(__name__)

DEFAULT_Z = 1.0
DEFAULT_DEAD_ZONE_PCT = 5.0
FLOAT_TOLERANCE = 1e-9


# ---------------------------------------------------------------------------
# Helper utilities (kept top-level for straightforward unit testing)


def _as_array(series: Iterable[float], field: str) -> np.ndarray:
    values = np.asarray(list(series), dtype=float)
    if values.size and (not np.isfinite(values).all() or (values < 0).any()):
        raise InvalidInput(field, "values must be non-negative numbers")
    return values


def sample_std(values: np.ndarray) -> float:
    """Sample standard deviation (ddof=1); ``0.0`` below two observations."""

    if values.size < 2:
        return 0.0
    return float(np.std(values, ddof=1))


def compute_interval(expected: float, std: float, horizon_days: int, z_value: float) -> ConfidenceInterval:
    """Return ``expected +/- z * std * sqrt(horizon)`` with the low end clipped at 0."""

    spread = z_value * std * sqrt(horizon_days)
    return ConfidenceInterval(low=max(0.0, expected - spread), high=expected + spread)


def classify_trend(
    series: Sequence[float],
    dead_zone_pct: float = DEFAULT_DEAD_ZONE_PCT,
) -> Tuple[DemandTrend, float]:
    """Compare the mean of the newer half of ``series`` with the older half.

    With an odd number of points the oldest one is dropped so both halves
    have equal length.  Series shorter than two points are ``Flat``.
    """

    values = np.asarray(list(series), dtype=float)
    if values.size < 2:
        return DemandTrend.FLAT, 0.0
    if values.size % 2:
        values = values[1:]
    half = values.size // 2
    older_mean = float(values[:half].mean())
    newer_mean = float(values[half:].mean())

    if older_mean == 0:
        if newer_mean > 0:
            return DemandTrend.UP, 100.0
        return DemandTrend.FLAT, 0.0

    percentage = (newer_mean - older_mean) / older_mean * 100
    # A change of exactly the dead zone stays Flat.
    if percentage > dead_zone_pct + FLOAT_TOLERANCE:
        return DemandTrend.UP, percentage
    if percentage < -dead_zone_pct - FLOAT_TOLERANCE:
        return DemandTrend.DOWN, percentage
    return DemandTrend.FLAT, percentage


def project_total(values: np.ndarray, horizon_days: int, z_value: float) -> Tuple[float, ConfidenceInterval]:
    """Expected total over the horizon and its interval."""

    daily_mean = float(values.mean()) if values.size else 0.0
    expected = daily_mean * horizon_days
    interval = compute_interval(expected, sample_std(values), horizon_days, z_value)
    return expected, interval


def forecast(
    revenue_series: Iterable[float],
    horizon_days: int,
    z_value: float = DEFAULT_Z,
    dead_zone_pct: float = DEFAULT_DEAD_ZONE_PCT,
    expense_series: Optional[Iterable[float]] = None,
) -> DemandForecast:
    """Forecast revenue over ``horizon_days`` from a time-ordered daily series."""

    horizon_days = require_positive_int("horizon_days", horizon_days)
    z_value = require_non_negative("z_value", z_value)
    dead_zone_pct = require_non_negative("dead_zone_pct", dead_zone_pct)
    values = _as_array(revenue_series, "revenue_series")

    expected, interval = project_total(values, horizon_days, z_value)
    trend, percentage = classify_trend(values, dead_zone_pct)

    expected_expenses = None
    expense_interval = None
    if expense_series is not None:
        expenses = _as_array(expense_series, "expense_series")
        expected_expenses, expense_interval = project_total(expenses, horizon_days, z_value)

    return DemandForecast(
        horizon_days=horizon_days,
        expected_revenue=expected,
        confidence_interval=interval,
        trend=trend,
        trend_percentage=percentage,
        expected_expenses=expected_expenses,
        expense_confidence_interval=expense_interval,
    )


# ---------------------------------------------------------------------------
# Core service implementation


class ForecastingService:
    """Produce one demand forecast per requested horizon."""

    DEFAULT_HORIZONS: Sequence[int] = (7, 14, 30)

    def __init__(self, z_value: float = DEFAULT_Z, dead_zone_pct: float = DEFAULT_DEAD_ZONE_PCT) -> None:
        self.z_value = require_non_negative("z_value", z_value)
        self.dead_zone_pct = require_non_negative("dead_zone_pct", dead_zone_pct)

    def forecast(self, revenue_series: Sequence[float], horizon_days: int) -> DemandForecast:
        return forecast(revenue_series, horizon_days, self.z_value, self.dead_zone_pct)

    def forecast_many(
        self,
        revenue_series: Sequence[float],
        horizons: Optional[Sequence[int]] = None,
        expense_series: Optional[Sequence[float]] = None,
    ) -> List[DemandForecast]:
        """Return forecasts in the order the horizons were requested."""

        horizons = list(horizons) if horizons is not None else list(self.DEFAULT_HORIZONS)
        results = [
            forecast(
                revenue_series,
                horizon,
                self.z_value,
                self.dead_zone_pct,
                expense_series=expense_series,
            )
            for horizon in horizons
        ]
        if results:
            LOGGER.info(
                "Demand forecast over %d days of history: horizons=%s trend=%s (%.1f%%)",
                len(revenue_series),
                horizons,
                results[0].trend.value,
                results[0].trend_percentage,
            )
        return results
