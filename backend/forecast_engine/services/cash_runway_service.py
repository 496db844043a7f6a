"""Project cash runway under pessimistic, baseline and optimistic scenarios."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from ..core.errors import InvalidInput, require_non_negative
from ..models.schemas import CashEvent, CashEventType, CashRunway, Scenario

LOGGER = logging.getLogger(__name__)

DEFAULT_STRESS_FACTOR = 0.20
FLOAT_TOLERANCE = 1e-9

PESSIMISTIC = "pessimistic"
BASELINE = "baseline"
OPTIMISTIC = "optimistic"

# Scenario name -> (revenue multiplier sign, expense multiplier sign)
SCENARIO_ORDER: Tuple[Tuple[str, int, int], ...] = (
    (PESSIMISTIC, -1, 1),
    (BASELINE, 0, 0),
    (OPTIMISTIC, 1, -1),
)


def days_until_zero(current_balance: float, daily_net: float) -> Optional[int]:
    """Days before ``current_balance`` is exhausted, ``None`` if it never is."""

    if daily_net >= 0:
        return None
    if current_balance <= 0:
        return 0
    return int(math.ceil(current_balance / abs(daily_net) - FLOAT_TOLERANCE))


def derive_balance(
    opening_balance: float,
    events: Iterable[CashEvent],
    as_of: Optional[datetime] = None,
) -> float:
    """Apply deposits and withdrawals to the opening balance.

    Events stamped after ``as_of`` are ignored; undated events always count.
    """

    balance = float(opening_balance)
    for event in events:
        if as_of is not None and event.occurred_at is not None and event.occurred_at > as_of:
            continue
        if event.type == CashEventType.DEPOSIT:
            balance += event.amount
        else:
            balance -= event.amount
    return balance


def project(
    current_balance: float,
    daily_revenue: float,
    daily_expenses: float,
    stress_factor: float = DEFAULT_STRESS_FACTOR,
) -> CashRunway:
    """Return the runway under each scenario, in a fixed order.

    The pessimistic scenario lowers revenue and raises expenses by
    ``stress_factor``; the optimistic scenario applies the inverse.
    """

    daily_revenue = require_non_negative("daily_revenue", daily_revenue)
    daily_expenses = require_non_negative("daily_expenses", daily_expenses)
    stress_factor = require_non_negative("stress_factor", stress_factor)
    if stress_factor >= 1:
        raise InvalidInput("stress_factor", f"must be < 1, got {stress_factor!r}")
    current_balance = float(current_balance)

    scenarios: List[Scenario] = []
    for name, revenue_sign, expense_sign in SCENARIO_ORDER:
        revenue = daily_revenue * (1 + revenue_sign * stress_factor)
        expenses = daily_expenses * (1 + expense_sign * stress_factor)
        daily_net = round(revenue - expenses, 6)
        scenarios.append(
            Scenario(
                name=name,
                daily_net=daily_net,
                days_until_zero=days_until_zero(current_balance, daily_net),
            )
        )

    LOGGER.debug(
        "Cash runway: balance=%.2f revenue=%.2f expenses=%.2f days=%s",
        current_balance,
        daily_revenue,
        daily_expenses,
        [s.days_until_zero for s in scenarios],
    )

    return CashRunway(
        current_balance=current_balance,
        daily_revenue=daily_revenue,
        daily_expenses=daily_expenses,
        scenarios=scenarios,
    )
