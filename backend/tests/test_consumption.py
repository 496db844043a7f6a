from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from backend.forecast_engine.core.errors import InvalidInput
from backend.forecast_engine.models.schemas import MovementType, StockMovement
from backend.forecast_engine.services import consumption_service


def _movement(item_id: str, quantity: float, when: datetime, kind: MovementType = MovementType.USAGE) -> StockMovement:
    return StockMovement(item_id=item_id, type=kind, quantity=quantity, occurred_at=when)


def test_estimate_spreads_usage_over_the_whole_window(as_of: datetime) -> None:
    movements = [_movement("flour", -3.0, as_of - timedelta(days=i)) for i in range(30)]

    assert consumption_service.estimate(movements, window_days=30) == pytest.approx(3.0)


def test_estimate_uses_absolute_quantities(as_of: datetime) -> None:
    movements = [
        _movement("flour", -40.0, as_of - timedelta(days=1)),
        _movement("flour", 50.0, as_of - timedelta(days=2)),
    ]

    assert consumption_service.estimate(movements, window_days=30) == pytest.approx(3.0)


def test_estimate_without_movements_is_zero() -> None:
    assert consumption_service.estimate([], window_days=30) == 0.0


@pytest.mark.parametrize("window", [0, -5])
def test_estimate_rejects_non_positive_window(window: int) -> None:
    with pytest.raises(InvalidInput):
        consumption_service.estimate([], window_days=window)


def test_select_usage_filters_item_type_and_window(as_of: datetime) -> None:
    start = as_of - timedelta(days=30)
    movements = [
        _movement("flour", -1.0, start),
        _movement("flour", -2.0, as_of),
        _movement("flour", -4.0, start - timedelta(seconds=1)),
        _movement("flour", -8.0, as_of + timedelta(hours=1)),
        _movement("flour", 16.0, as_of - timedelta(days=1), MovementType.PURCHASE),
        _movement("flour", -32.0, as_of - timedelta(days=1), MovementType.WASTE),
        _movement("sugar", -64.0, as_of - timedelta(days=1)),
    ]

    selected = consumption_service.select_usage(movements, "flour", as_of, window_days=30)

    assert sorted(m.quantity for m in selected) == [-2.0, -1.0]


def test_active_days_counts_distinct_dates(as_of: datetime) -> None:
    movements = [
        _movement("flour", -1.0, as_of.replace(hour=8)),
        _movement("flour", -1.0, as_of.replace(hour=9)),
        _movement("flour", -1.0, as_of - timedelta(days=3)),
    ]

    assert consumption_service.active_days(movements) == 2
    assert consumption_service.active_days([]) == 0
