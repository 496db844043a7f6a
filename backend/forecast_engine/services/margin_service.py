"""Compare profit margins across consecutive periods."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Iterable, List, Sequence

import pandas as pd

from ..core.errors import InvalidInput, require_positive_int
from ..models.schemas import (
    ExpensePoint,
    MarginDirection,
    MarginPeriod,
    MarginTrend,
    PeriodMargin,
    RevenuePoint,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_DEAD_ZONE_PP = 2.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_margin(revenue: float, expenses: float) -> int:
    """Profit margin in whole percentage points; ``0`` without revenue."""

    if revenue == 0:
        return 0
    return round_half_up((revenue - expenses) / revenue * 100)


def _validate(periods: Sequence[MarginPeriod]) -> None:
    if not periods:
        raise InvalidInput("periods", "at least one period is required")

    labels = [period.label for period in periods]
    duplicates = sorted({label for label in labels if labels.count(label) > 1})
    if duplicates:
        raise InvalidInput("periods", f"duplicate labels: {', '.join(duplicates)}")

    dated = [period.ends_on for period in periods if period.ends_on is not None]
    if dated and len(dated) != len(periods):
        raise InvalidInput("periods", "either every period or none must carry ends_on")
    for previous, current in zip(dated, dated[1:]):
        if current <= previous:
            raise InvalidInput("periods", "periods must be in chronological order, oldest first")


def analyze(periods: Sequence[MarginPeriod], dead_zone_pp: float = DEFAULT_DEAD_ZONE_PP) -> MarginTrend:
    """Classify the margin trend of chronologically ordered periods.

    The latest period is compared with the one before it; a single period
    is ``Stable`` by definition.
    """

    periods = list(periods)
    _validate(periods)

    comparison = [
        PeriodMargin(period=period.label, margin=calculate_margin(period.revenue, period.expenses))
        for period in periods
    ]
    current = comparison[-1].margin

    trend = MarginDirection.STABLE
    if len(comparison) >= 2:
        delta = current - comparison[-2].margin
        if delta > dead_zone_pp:
            trend = MarginDirection.IMPROVING
        elif delta < -dead_zone_pp:
            trend = MarginDirection.DECLINING

    return MarginTrend(current_margin=current, trend=trend, period_comparison=comparison)


def _window_total(frame: pd.DataFrame, start: datetime, end: datetime, inclusive_end: bool) -> float:
    if frame.empty:
        return 0.0
    stamps = frame["occurred_at"]
    upper = stamps <= end if inclusive_end else stamps < end
    mask = (stamps >= start) & upper
    return float(frame.loc[mask, "amount"].sum())


def _frame(points: Iterable[RevenuePoint | ExpensePoint]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"occurred_at": p.occurred_at, "amount": p.amount} for p in points],
        columns=["occurred_at", "amount"],
    )


def build_periods(
    revenue_points: Iterable[RevenuePoint],
    expense_points: Iterable[ExpensePoint],
    as_of: datetime,
    period_days: int = 30,
    count: int = 2,
) -> List[MarginPeriod]:
    """Split the history ending at ``as_of`` into ``count`` equal periods.

    Periods are returned oldest first.  The most recent period includes
    ``as_of`` itself; earlier ones are half-open ``[start, end)``.
    """

    period_days = require_positive_int("period_days", period_days)
    count = require_positive_int("count", count)
    revenue = _frame(revenue_points)
    expenses = _frame(expense_points)

    periods: List[MarginPeriod] = []
    for index in range(count - 1, -1, -1):
        end = as_of - timedelta(days=period_days * index)
        start = end - timedelta(days=period_days)
        latest = index == 0
        periods.append(
            MarginPeriod(
                label=f"{start.date().isoformat()}/{end.date().isoformat()}",
                revenue=_window_total(revenue, start, end, latest),
                expenses=_window_total(expenses, start, end, latest),
                ends_on=end.date(),
            )
        )
    return periods
