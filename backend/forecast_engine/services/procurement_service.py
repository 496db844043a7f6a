"""Generate reorder recommendations from depletion forecasts."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from ..core.errors import InvalidInput, require_non_negative
from ..models.schemas import (
    ForecastStatus,
    InventoryItemSnapshot,
    ReorderRecommendation,
    StockForecast,
    Urgency,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_LEAD_TIME_DAYS = 5
DEFAULT_SAFETY_DAYS = 3

REORDER_CANDIDATES = frozenset(
    {ForecastStatus.CRITICAL, ForecastStatus.WARNING, ForecastStatus.LOW}
)

URGENCY_RANK = {Urgency.URGENT: 0, Urgency.SOON: 1, Urgency.PLAN_AHEAD: 2}


# ---------------------------------------------------------------------------
def calculate_order_quantity(
    daily_average_usage: float,
    current_stock: float,
    lead_time_days: float,
    safety_days: float,
) -> float:
    """Return the quantity that covers lead time plus safety stock."""

    target = max(daily_average_usage, 0.0) * (lead_time_days + safety_days)
    return max(0.0, target - current_stock)


def classify_urgency(days_until_depletion: int, lead_time_days: float, safety_days: float) -> Urgency:
    """Compare the depletion countdown with the time restocking takes."""

    if days_until_depletion <= lead_time_days:
        return Urgency.URGENT
    if days_until_depletion <= lead_time_days + safety_days:
        return Urgency.SOON
    return Urgency.PLAN_AHEAD


class ProcurementService:
    """Lead-time aware reorder advisor."""

    def __init__(
        self,
        lead_time_days: float = DEFAULT_LEAD_TIME_DAYS,
        safety_days: float = DEFAULT_SAFETY_DAYS,
    ) -> None:
        self.lead_time_days = require_non_negative("lead_time_days", lead_time_days)
        self.safety_days = require_non_negative("safety_days", safety_days)

    # ------------------------------------------------------------------
    def recommend(
        self,
        forecast: StockForecast,
        unit_cost: Optional[float] = None,
        item: Optional[InventoryItemSnapshot] = None,
    ) -> Optional[ReorderRecommendation]:
        return recommend(
            forecast,
            lead_time_days=self.lead_time_days,
            safety_days=self.safety_days,
            unit_cost=unit_cost,
            item=item,
        )

    # ------------------------------------------------------------------
    def recommend_all(
        self,
        forecasts: Iterable[StockForecast],
        items: dict[str, InventoryItemSnapshot] | None = None,
    ) -> List[ReorderRecommendation]:
        """Recommend for every eligible forecast and rank the result."""

        items = items or {}
        recommendations = []
        for entry in forecasts:
            item = items.get(entry.item_id)
            unit_cost = item.unit_cost if item is not None else None
            rec = self.recommend(entry, unit_cost=unit_cost, item=item)
            if rec is not None:
                recommendations.append(rec)
        return sort_recommendations(recommendations)


def recommend(
    forecast: StockForecast,
    lead_time_days: float = DEFAULT_LEAD_TIME_DAYS,
    safety_days: float = DEFAULT_SAFETY_DAYS,
    unit_cost: Optional[float] = None,
    item: Optional[InventoryItemSnapshot] = None,
) -> Optional[ReorderRecommendation]:
    """Return a recommendation, or ``None`` when the item needs no order.

    Only CRITICAL, WARNING and LOW forecasts are candidates: OK items have
    enough runway and NO_DATA items carry no usage signal to size an order.
    """

    lead_time_days = require_non_negative("lead_time_days", lead_time_days)
    safety_days = require_non_negative("safety_days", safety_days)
    if unit_cost is not None:
        unit_cost = require_non_negative("unit_cost", unit_cost)

    if forecast.status not in REORDER_CANDIDATES:
        return None
    if forecast.days_until_depletion is None:  # pragma: no cover - excluded by status
        raise InvalidInput("forecast", f"{forecast.item_id} has a status but no depletion estimate")

    quantity = calculate_order_quantity(
        forecast.daily_average_usage,
        forecast.current_stock,
        lead_time_days,
        safety_days,
    )
    quantity = round(quantity, 4)
    if quantity <= 0:
        LOGGER.debug("Stock of %s already covers lead time and safety days", forecast.item_id)
        return None

    cost = round(quantity * unit_cost, 2) if unit_cost is not None else 0.0
    urgency = classify_urgency(forecast.days_until_depletion, lead_time_days, safety_days)

    LOGGER.info(
        "Reorder rec for %s: usage=%.2f stock=%.2f lead=%.1f safety=%.1f qty=%.2f cost=%.2f urgency=%s",
        forecast.item_id,
        forecast.daily_average_usage,
        forecast.current_stock,
        lead_time_days,
        safety_days,
        quantity,
        cost,
        urgency.value,
    )

    return ReorderRecommendation(
        item_id=forecast.item_id,
        item_name=forecast.item_name,
        unit=forecast.unit,
        current_stock=forecast.current_stock,
        recommended_order_quantity=quantity,
        estimated_cost=cost,
        urgency=urgency,
        days_until_depletion=forecast.days_until_depletion,
        supplier_id=item.supplier_id if item is not None else None,
        supplier_name=item.supplier_name if item is not None else None,
    )


def sort_recommendations(recommendations: Iterable[ReorderRecommendation]) -> List[ReorderRecommendation]:
    """Order by urgency, then by the soonest depletion."""

    def _key(rec: ReorderRecommendation) -> tuple[int, float]:
        days = rec.days_until_depletion
        return URGENCY_RANK[rec.urgency], float("inf") if days is None else days

    return sorted(recommendations, key=_key)
