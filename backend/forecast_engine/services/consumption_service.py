"""Estimate per-item daily consumption from stock movements."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable, List

import numpy as np

from ..core.errors import require_positive_int
from ..models.schemas import MovementType, StockMovement

LOGGER = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30


def window_start(as_of: datetime, window_days: int) -> datetime:
    """Return the inclusive lower bound of the analysis window."""

    return as_of - timedelta(days=window_days)


def select_usage(
    movements: Iterable[StockMovement],
    item_id: str,
    as_of: datetime,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> List[StockMovement]:
    """Return the Usage movements of ``item_id`` inside ``[as_of - window, as_of]``."""

    window_days = require_positive_int("window_days", window_days)
    start = window_start(as_of, window_days)
    return [
        movement
        for movement in movements
        if movement.item_id == item_id
        and movement.type == MovementType.USAGE
        and start <= movement.occurred_at <= as_of
    ]


def estimate(movements: Iterable[StockMovement], window_days: int = DEFAULT_WINDOW_DAYS) -> float:
    """Return the daily average usage of the supplied Usage movements.

    The total is spread over the whole window rather than over the days on
    which usage happened to be logged, so sparse logging does not inflate
    the rate.  An empty collection yields ``0.0``.
    """

    window_days = require_positive_int("window_days", window_days)
    quantities = np.array([abs(float(m.quantity)) for m in movements], dtype=float)
    if quantities.size == 0:
        return 0.0
    return float(quantities.sum()) / window_days


def active_days(movements: Iterable[StockMovement]) -> int:
    """Count the distinct calendar days on which usage was recorded."""

    return len({movement.occurred_at.date() for movement in movements})
