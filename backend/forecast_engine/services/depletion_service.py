r"""backend\forecast_engine\services\depletion_service.py

Turn current stock and a usage rate into a depletion forecast.

Status and confidence grades are driven by ordered threshold tables so the
boundary values (exactly 3, 7 and 14 days; exactly 30% and 70% of the
window) are explicit and independently testable.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from ..core.errors import InvalidInput, require_non_negative, require_positive_int
from ..models.schemas import Confidence, ForecastStatus, InventoryItemSnapshot, StockForecast

LOGGER = logging.getLogger(__name__)

FLOAT_TOLERANCE = 1e-9

# (inclusive upper bound in days, status); first match wins.
STATUS_THRESHOLDS: Sequence[Tuple[int, ForecastStatus]] = (
    (3, ForecastStatus.CRITICAL),
    (7, ForecastStatus.WARNING),
    (14, ForecastStatus.LOW),
)

# (minimum share of window days with usage, grade); first match wins.
CONFIDENCE_THRESHOLDS: Sequence[Tuple[float, Confidence]] = (
    (0.70, Confidence.HIGH),
    (0.30, Confidence.MEDIUM),
)


def days_until_depletion(current_stock: float, daily_average_usage: float) -> Optional[int]:
    """Return whole days of stock left, or ``None`` when usage is zero."""

    if daily_average_usage == 0:
        return None
    return int(math.floor(current_stock / daily_average_usage + FLOAT_TOLERANCE))


def depletion_date(as_of: datetime | date, days: Optional[int]) -> Optional[date]:
    if days is None:
        return None
    base = as_of.date() if isinstance(as_of, datetime) else as_of
    return base + timedelta(days=days)


def classify_status(days: Optional[int], movement_count: int) -> ForecastStatus:
    """Classify a forecast; items without usage evidence are ``NO_DATA``."""

    if movement_count == 0:
        return ForecastStatus.NO_DATA
    if days is None:
        return ForecastStatus.OK
    for upper_bound, status in STATUS_THRESHOLDS:
        if days <= upper_bound:
            return status
    return ForecastStatus.OK


def classify_confidence(movement_days: int, window_days: int) -> Confidence:
    """Grade how much of the analysis window is backed by usage records."""

    window_days = require_positive_int("window_days", window_days)
    ratio = min(max(movement_days, 0), window_days) / window_days
    for minimum, grade in CONFIDENCE_THRESHOLDS:
        if ratio >= minimum:
            return grade
    return Confidence.LOW


def forecast(
    current_stock: float,
    daily_average_usage: float,
    movement_count: int,
    *,
    as_of: datetime | date,
    window_days: int = 30,
    active_days: Optional[int] = None,
    item: Optional[InventoryItemSnapshot] = None,
    item_id: str = "",
) -> StockForecast:
    """Build the ``StockForecast`` for one item.

    Parameters
    ----------
    current_stock:
        Units on hand; must be non-negative.
    daily_average_usage:
        Rate produced by the consumption estimator.
    movement_count:
        Number of Usage movements in the analysis window.
    active_days:
        Distinct days with usage.  When omitted the movement count (capped
        at the window length) is used as the number of movement-days.
    item:
        Optional snapshot whose name, category and unit are copied onto the
        forecast.
    """

    current_stock = require_non_negative("current_stock", current_stock)
    daily_average_usage = require_non_negative("daily_average_usage", daily_average_usage)
    if movement_count < 0:
        raise InvalidInput("movement_count", f"must be >= 0, got {movement_count!r}")

    days = days_until_depletion(current_stock, daily_average_usage)
    movement_days = active_days if active_days is not None else movement_count
    status = classify_status(days, movement_count)
    confidence = classify_confidence(movement_days, window_days)

    if item is not None:
        context = {
            "item_id": item.id,
            "item_name": item.name,
            "category": item.category,
            "unit": item.unit,
        }
    else:
        context = {"item_id": item_id}

    LOGGER.debug(
        "Depletion forecast for %s: usage=%.3f days=%s status=%s confidence=%s",
        context["item_id"],
        daily_average_usage,
        days,
        status.value,
        confidence.value,
    )

    return StockForecast(
        **context,
        current_stock=current_stock,
        daily_average_usage=daily_average_usage,
        days_until_depletion=days,
        depletion_date=depletion_date(as_of, days),
        status=status,
        confidence=confidence,
        movement_count=movement_count,
    )


def _sort_key(entry: StockForecast) -> Tuple[int, int]:
    days = entry.days_until_depletion
    return (1, 0) if days is None else (0, days)


def sort_forecasts(forecasts: Iterable[StockForecast]) -> List[StockForecast]:
    """Most urgent first; forecasts without an estimate go last."""

    return sorted(forecasts, key=_sort_key)
