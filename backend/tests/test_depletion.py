from __future__ import annotations

from datetime import date, datetime

import pytest

from backend.forecast_engine.core.errors import InvalidInput
from backend.forecast_engine.models.schemas import (
    Confidence,
    ForecastStatus,
    InventoryItemSnapshot,
    StockForecast,
)
from backend.forecast_engine.services import depletion_service


def _forecast_with_days(item_id: str, days: int | None) -> StockForecast:
    return StockForecast(
        item_id=item_id,
        daily_average_usage=0.0 if days is None else 1.0,
        days_until_depletion=days,
        status=ForecastStatus.OK,
        confidence=Confidence.LOW,
    )


def test_critical_item_with_dense_history(as_of: datetime) -> None:
    result = depletion_service.forecast(10, 3.0, 25, as_of=as_of, window_days=30, item_id="flour")

    assert result.item_id == "flour"
    assert result.daily_average_usage == pytest.approx(3.0)
    assert result.days_until_depletion == 3
    assert result.depletion_date == date(2024, 4, 3)
    assert result.status == ForecastStatus.CRITICAL
    assert result.confidence == Confidence.HIGH


def test_zero_usage_has_no_depletion_estimate(as_of: datetime) -> None:
    result = depletion_service.forecast(50, 0.0, 4, as_of=as_of)

    assert result.days_until_depletion is None
    assert result.depletion_date is None
    assert result.status == ForecastStatus.OK


@pytest.mark.parametrize("stock", [0, 5, 1_000])
def test_no_movements_is_no_data_regardless_of_stock(as_of: datetime, stock: float) -> None:
    result = depletion_service.forecast(stock, 0.0, 0, as_of=as_of)

    assert result.status == ForecastStatus.NO_DATA
    assert result.days_until_depletion is None
    assert result.confidence == Confidence.LOW


def test_empty_stock_with_usage_is_critical(as_of: datetime) -> None:
    result = depletion_service.forecast(0, 2.0, 10, as_of=as_of)

    assert result.days_until_depletion == 0
    assert result.depletion_date == as_of.date()
    assert result.status == ForecastStatus.CRITICAL


@pytest.mark.parametrize(
    "days, expected",
    [
        (0, ForecastStatus.CRITICAL),
        (3, ForecastStatus.CRITICAL),
        (4, ForecastStatus.WARNING),
        (7, ForecastStatus.WARNING),
        (8, ForecastStatus.LOW),
        (14, ForecastStatus.LOW),
        (15, ForecastStatus.OK),
    ],
)
def test_status_boundaries(days: int, expected: ForecastStatus) -> None:
    assert depletion_service.classify_status(days, movement_count=1) == expected


@pytest.mark.parametrize(
    "movement_days, expected",
    [
        (30, Confidence.HIGH),
        (21, Confidence.HIGH),
        (20, Confidence.MEDIUM),
        (9, Confidence.MEDIUM),
        (8, Confidence.LOW),
        (0, Confidence.LOW),
        (45, Confidence.HIGH),
    ],
)
def test_confidence_boundaries(movement_days: int, expected: Confidence) -> None:
    assert depletion_service.classify_confidence(movement_days, 30) == expected


def test_active_days_take_precedence_over_movement_count(as_of: datetime) -> None:
    result = depletion_service.forecast(100, 1.0, 25, as_of=as_of, window_days=30, active_days=5)

    assert result.confidence == Confidence.LOW


def test_item_context_is_copied(as_of: datetime) -> None:
    item = InventoryItemSnapshot(id="i-1", name="Flour", category="Dry", current_stock=10, unit="kg")

    result = depletion_service.forecast(item.current_stock, 1.0, 3, as_of=as_of, item=item)

    assert (result.item_id, result.item_name, result.category, result.unit) == ("i-1", "Flour", "Dry", "kg")
    assert result.movement_count == 3


def test_negative_stock_is_rejected(as_of: datetime) -> None:
    with pytest.raises(InvalidInput):
        depletion_service.forecast(-1, 1.0, 3, as_of=as_of)


def test_sort_puts_most_urgent_first_and_unknown_last() -> None:
    forecasts = [
        _forecast_with_days("a", None),
        _forecast_with_days("b", 5),
        _forecast_with_days("c", 2),
        _forecast_with_days("d", None),
        _forecast_with_days("e", 10),
    ]

    ordered = depletion_service.sort_forecasts(forecasts)

    assert [f.item_id for f in ordered] == ["c", "b", "e", "a", "d"]
    known = [f.days_until_depletion for f in ordered if f.days_until_depletion is not None]
    assert known == sorted(known)
