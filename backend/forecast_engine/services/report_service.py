r"""backend\forecast_engine\services\report_service.py

Compose the per-component services into a single forecast report.

The orchestrator adds no business rules of its own: it filters the raw
collections, substitutes configuration defaults, fans per-item work out
and applies the documented output ordering once all work is complete.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.config import ForecastConfig, build_config, load_forecast_config
from ..core.errors import InvalidInput
from ..core.observability import track_report
from ..models.schemas import (
    CashEvent,
    ExpensePoint,
    ForecastReport,
    ForecastStatus,
    InventoryItemSnapshot,
    RevenuePoint,
    StockForecast,
    StockMovement,
)
from . import (
    cash_runway_service,
    consumption_service,
    depletion_service,
    history_service,
    margin_service,
)
from .forecasting_service import ForecastingService
from .procurement_service import ProcurementService

LOGGER = logging.getLogger(__name__)

_Model = TypeVar("_Model", bound=BaseModel)


def _coerce(records: Iterable[Any] | None, model: Type[_Model], field: str) -> List[_Model]:
    """Accept model instances or plain mappings; report bad rows as ``InvalidInput``."""

    coerced: List[_Model] = []
    for index, record in enumerate(records or ()):
        if isinstance(record, model):
            coerced.append(record)
            continue
        try:
            coerced.append(model.model_validate(record))
        except ValidationError as exc:
            first = exc.errors()[0]
            loc = ".".join(str(part) for part in first.get("loc", ()))
            raise InvalidInput(f"{field}[{index}].{loc}", first.get("msg", "invalid value")) from exc
    return coerced


def _resolve_config(config: ForecastConfig | Mapping[str, Any] | None) -> ForecastConfig:
    if config is None:
        return ForecastConfig()
    if isinstance(config, ForecastConfig):
        return config
    return build_config(dict(config))


def _check_timezones(records: Sequence[Any], field: str, as_of: datetime) -> None:
    """Timestamps are compared as given, so all of them must share ``as_of``'s awareness."""

    aware = as_of.tzinfo is not None
    for index, record in enumerate(records):
        occurred_at = record.occurred_at
        if occurred_at is not None and (occurred_at.tzinfo is not None) != aware:
            expected = "timezone-aware" if aware else "naive"
            raise InvalidInput(
                f"{field}[{index}].occurred_at",
                f"must be {expected} like as_of, got {occurred_at.isoformat()}",
            )


def _group_usage(
    movements: Sequence[StockMovement],
    as_of: datetime,
    window_days: int,
) -> Dict[str, List[StockMovement]]:
    by_item: Dict[str, List[StockMovement]] = defaultdict(list)
    for movement in movements:
        by_item[movement.item_id].append(movement)
    return {
        item_id: consumption_service.select_usage(rows, item_id, as_of, window_days)
        for item_id, rows in by_item.items()
    }


def _forecast_item(
    item: InventoryItemSnapshot,
    usage: Sequence[StockMovement],
    as_of: datetime,
    window_days: int,
) -> StockForecast:
    rate = consumption_service.estimate(usage, window_days)
    return depletion_service.forecast(
        item.current_stock,
        rate,
        len(usage),
        as_of=as_of,
        window_days=window_days,
        active_days=consumption_service.active_days(usage),
        item=item,
    )


def build_stock_forecasts(
    items: Sequence[InventoryItemSnapshot],
    movements: Sequence[StockMovement],
    as_of: datetime,
    window_days: int = consumption_service.DEFAULT_WINDOW_DAYS,
    max_workers: int = 1,
) -> List[StockForecast]:
    """One forecast per item, sorted most urgent first."""

    grouped = _group_usage(movements, as_of, window_days)
    if max_workers > 1 and len(items) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = [
                pool.submit(_forecast_item, item, grouped.get(item.id, []), as_of, window_days)
                for item in items
            ]
            forecasts = [future.result() for future in futures]
    else:
        forecasts = [
            _forecast_item(item, grouped.get(item.id, []), as_of, window_days) for item in items
        ]
    return depletion_service.sort_forecasts(forecasts)


def build_forecast_report(
    tenant_id: str,
    as_of: datetime,
    config: ForecastConfig | Mapping[str, Any] | None = None,
    items: Iterable[InventoryItemSnapshot | Mapping[str, Any]] | None = None,
    movements: Iterable[StockMovement | Mapping[str, Any]] | None = None,
    revenue_points: Iterable[RevenuePoint | Mapping[str, Any]] | None = None,
    expense_points: Iterable[ExpensePoint | Mapping[str, Any]] | None = None,
    cash_events: Iterable[CashEvent | Mapping[str, Any]] | None = None,
) -> ForecastReport:
    """Build the combined forecasting report for one tenant.

    Tenants without any history receive a well-formed report made of
    ``NO_DATA`` forecasts, zero projections and a ``Stable`` margin trend.
    """

    if not isinstance(as_of, datetime):
        raise InvalidInput("as_of", f"must be a datetime, got {type(as_of).__name__}")
    cfg = _resolve_config(config)

    item_list = _coerce(items, InventoryItemSnapshot, "items")
    movement_list = _coerce(movements, StockMovement, "movements")
    revenue_list = _coerce(revenue_points, RevenuePoint, "revenue_points")
    expense_list = _coerce(expense_points, ExpensePoint, "expense_points")
    cash_list = _coerce(cash_events, CashEvent, "cash_events")
    for records, field in (
        (movement_list, "movements"),
        (revenue_list, "revenue_points"),
        (expense_list, "expense_points"),
        (cash_list, "cash_events"),
    ):
        _check_timezones(records, field, as_of)

    window = cfg.analysis_window_days

    with track_report(tenant_id, items=len(item_list), window_days=window) as extra:
        stock_forecasts = build_stock_forecasts(
            item_list, movement_list, as_of, window, cfg.max_workers
        )

        advisor = ProcurementService(cfg.lead_time_days, cfg.safety_days)
        reorders = advisor.recommend_all(stock_forecasts, {item.id: item for item in item_list})

        revenue_daily = history_service.daily_totals(revenue_list, as_of, window)
        expense_daily = history_service.daily_totals(expense_list, as_of, window)

        balance = cash_runway_service.derive_balance(cfg.opening_balance, cash_list, as_of)
        cash_runway = cash_runway_service.project(
            balance,
            float(revenue_daily.sum()) / window,
            float(expense_daily.sum()) / window,
            cfg.stress_factor,
        )

        demand = ForecastingService(cfg.ci_z, cfg.trend_dead_zone_pct).forecast_many(
            revenue_daily.tolist(),
            cfg.horizons,
            expense_series=expense_daily.tolist(),
        )

        periods = margin_service.build_periods(
            revenue_list,
            expense_list,
            as_of,
            cfg.margin_period_days,
            cfg.margin_periods,
        )
        margin_trend = margin_service.analyze(periods, cfg.margin_dead_zone_pp)

        history = history_service.build_history(revenue_list, expense_list, as_of, window)

        extra.update(
            reorders=len(reorders),
            critical=sum(1 for f in stock_forecasts if f.status == ForecastStatus.CRITICAL),
        )

    LOGGER.info(
        "Forecast report for tenant=%s: items=%d reorders=%d balance=%.2f margin=%d%% (%s)",
        tenant_id,
        len(stock_forecasts),
        len(reorders),
        cash_runway.current_balance,
        margin_trend.current_margin,
        margin_trend.trend.value,
    )

    return ForecastReport(
        tenant_id=tenant_id,
        as_of=as_of,
        stock_forecasts=stock_forecasts,
        reorder_recommendations=reorders,
        cash_runway=cash_runway,
        demand_forecasts=demand,
        margin_trend=margin_trend,
        history=history,
    )


class ForecastReportService:
    """Report builder bound to a configuration loaded from ``configs/``."""

    def __init__(self, config_root: Optional[str] = None, config: Optional[ForecastConfig] = None) -> None:
        self.config = config or load_forecast_config(config_root)

    def build(
        self,
        tenant_id: str,
        as_of: datetime,
        *,
        items: Iterable[Any] = (),
        movements: Iterable[Any] = (),
        revenue_points: Iterable[Any] = (),
        expense_points: Iterable[Any] = (),
        cash_events: Iterable[Any] = (),
        **overrides: Any,
    ) -> ForecastReport:
        """Build a report; keyword overrides replace individual config values."""

        config = self.config
        if overrides:
            config = build_config(self.config.model_dump(), **overrides)
        return build_forecast_report(
            tenant_id,
            as_of,
            config,
            items,
            movements,
            revenue_points,
            expense_points,
            cash_events,
        )
