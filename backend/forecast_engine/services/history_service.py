"""Aggregate revenue and expense points into daily series."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, List

import pandas as pd

from ..core.errors import require_positive_int
from ..models.schemas import ExpensePoint, HistoryPoint, RevenuePoint


def window_dates(as_of: datetime, window_days: int) -> List[date]:
    """The ``window_days`` calendar days ending with ``as_of``'s date."""

    window_days = require_positive_int("window_days", window_days)
    last = as_of.date()
    return [last - timedelta(days=offset) for offset in range(window_days - 1, -1, -1)]


def daily_totals(
    points: Iterable[RevenuePoint | ExpensePoint],
    as_of: datetime,
    window_days: int,
) -> pd.Series:
    """Sum amounts per calendar day over the window, filling gaps with zero.

    Points stamped after ``as_of`` are ignored.
    """

    days = window_dates(as_of, window_days)
    rows = [
        {"day": point.occurred_at.date(), "amount": float(point.amount)}
        for point in points
        if point.occurred_at <= as_of
    ]
    frame = pd.DataFrame(rows, columns=["day", "amount"])
    totals = frame.groupby("day")["amount"].sum() if not frame.empty else pd.Series(dtype=float)
    return totals.reindex(days, fill_value=0.0).astype(float)


def build_history(
    revenue_points: Iterable[RevenuePoint],
    expense_points: Iterable[ExpensePoint],
    as_of: datetime,
    window_days: int,
) -> List[HistoryPoint]:
    """Daily revenue/expense pairs for charting, oldest first."""

    revenue = daily_totals(revenue_points, as_of, window_days)
    expenses = daily_totals(expense_points, as_of, window_days)
    return [
        HistoryPoint(date=day, revenue=float(rev), expenses=float(exp))
        for day, rev, exp in zip(window_dates(as_of, window_days), revenue.to_numpy(), expenses.to_numpy())
    ]
