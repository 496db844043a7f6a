from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from backend.forecast_engine.core.errors import InvalidInput
from backend.forecast_engine.models.schemas import (
    ExpensePoint,
    MarginDirection,
    MarginPeriod,
    RevenuePoint,
)
from backend.forecast_engine.services import margin_service


def _period(label: str, revenue: float, expenses: float, ends_on: date | None = None) -> MarginPeriod:
    return MarginPeriod(label=label, revenue=revenue, expenses=expenses, ends_on=ends_on)


def test_falling_margin_is_declining() -> None:
    result = margin_service.analyze([_period("previous", 100, 80), _period("current", 100, 85)])

    assert result.current_margin == 15
    assert result.trend == MarginDirection.DECLINING
    assert [(p.period, p.margin) for p in result.period_comparison] == [("previous", 20), ("current", 15)]


def test_rising_margin_is_improving() -> None:
    result = margin_service.analyze([_period("previous", 100, 85), _period("current", 100, 80)])

    assert result.trend == MarginDirection.IMPROVING


@pytest.mark.parametrize("current_expenses", [78, 82])
def test_two_point_dead_zone_is_stable(current_expenses: float) -> None:
    result = margin_service.analyze([_period("previous", 100, 80), _period("current", 100, current_expenses)])

    assert result.trend == MarginDirection.STABLE


def test_single_period_is_stable() -> None:
    result = margin_service.analyze([_period("only", 200, 50)])

    assert result.current_margin == 75
    assert result.trend == MarginDirection.STABLE


@pytest.mark.parametrize(
    "revenue, expenses, expected",
    [(0, 50, 0), (0, 0, 0), (100, 150, -50), (200, 199, 1), (1000, 1010, -1), (3, 2, 33)],
)
def test_calculate_margin_rounds_half_up(revenue: float, expenses: float, expected: int) -> None:
    assert margin_service.calculate_margin(revenue, expenses) == expected


def test_empty_period_list_is_rejected() -> None:
    with pytest.raises(InvalidInput):
        margin_service.analyze([])


def test_duplicate_labels_are_rejected() -> None:
    with pytest.raises(InvalidInput, match="duplicate"):
        margin_service.analyze([_period("march", 10, 5), _period("march", 10, 6)])


def test_non_chronological_periods_are_rejected() -> None:
    periods = [
        _period("march", 10, 5, date(2024, 3, 31)),
        _period("february", 10, 6, date(2024, 2, 29)),
    ]

    with pytest.raises(InvalidInput, match="chronological"):
        margin_service.analyze(periods)


def test_build_periods_splits_history_oldest_first(as_of: datetime) -> None:
    revenue = [
        RevenuePoint(amount=100, occurred_at=as_of - timedelta(days=10)),
        RevenuePoint(amount=200, occurred_at=as_of - timedelta(days=40)),
        RevenuePoint(amount=999, occurred_at=as_of - timedelta(days=75)),
    ]
    expenses = [
        ExpensePoint(amount=50, occurred_at=as_of - timedelta(days=5)),
        ExpensePoint(amount=50, occurred_at=as_of - timedelta(days=45)),
    ]

    periods = margin_service.build_periods(revenue, expenses, as_of, period_days=30, count=2)

    assert [(p.revenue, p.expenses) for p in periods] == [(200.0, 50.0), (100.0, 50.0)]
    assert periods[0].ends_on < periods[1].ends_on
    assert periods[1].ends_on == as_of.date()

    trend = margin_service.analyze(periods)
    assert [p.margin for p in trend.period_comparison] == [75, 50]
    assert trend.trend == MarginDirection.DECLINING


def test_build_periods_boundary_belongs_to_the_newer_period(as_of: datetime) -> None:
    boundary = as_of - timedelta(days=30)
    revenue = [RevenuePoint(amount=10, occurred_at=boundary)]

    older, newer = margin_service.build_periods(revenue, [], as_of, period_days=30, count=2)

    assert older.revenue == 0.0
    assert newer.revenue == 10.0
