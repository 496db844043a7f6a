r"""backend\forecast_engine\models\schemas.py

Pydantic models used throughout the engine.

Input records mirror the rows supplied by the collaborator layer (stock
movements, inventory snapshots, revenue/expense points and bank events).
Output models are immutable value objects assembled into a
``ForecastReport``.  Using typed models ensures that the host service and
the engine agree on the structure of the data being exchanged.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)


# ---------------------------------------------------------------------------
# Enumerations


class MovementType(str, Enum):
    PURCHASE = "Purchase"
    USAGE = "Usage"
    WASTE = "Waste"
    ADJUSTMENT = "Adjustment"


class CashEventType(str, Enum):
    DEPOSIT = "Deposit"
    WITHDRAWAL = "Withdrawal"


class ForecastStatus(str, Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    LOW = "LOW"
    OK = "OK"
    NO_DATA = "NO_DATA"


class Confidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Urgency(str, Enum):
    URGENT = "URGENT"
    SOON = "SOON"
    PLAN_AHEAD = "PLAN_AHEAD"


class DemandTrend(str, Enum):
    UP = "Up"
    DOWN = "Down"
    FLAT = "Flat"


class MarginDirection(str, Enum):
    IMPROVING = "Improving"
    DECLINING = "Declining"
    STABLE = "Stable"


# ---------------------------------------------------------------------------
# Input records


class StockMovement(_Frozen):
    """A signed quantity change recorded against an inventory item."""

    item_id: str
    type: MovementType
    quantity: float = Field(..., description="Signed quantity; usage may be negative")
    unit_cost: Optional[float] = Field(None, ge=0)
    occurred_at: datetime


class InventoryItemSnapshot(_Frozen):
    """Current state of an inventory item."""

    id: str
    name: str
    category: str = ""
    current_stock: float = Field(..., ge=0)
    unit: str = ""
    unit_cost: Optional[float] = Field(None, ge=0)
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None


class RevenuePoint(_Frozen):
    amount: float = Field(..., ge=0)
    occurred_at: datetime


class ExpensePoint(_Frozen):
    amount: float = Field(..., ge=0)
    occurred_at: datetime


class CashEvent(_Frozen):
    type: CashEventType
    amount: float = Field(..., ge=0)
    occurred_at: Optional[datetime] = None


class MarginPeriod(_Frozen):
    """Revenue and expense totals for one comparison period."""

    label: str
    revenue: float = Field(..., ge=0)
    expenses: float = Field(..., ge=0)
    ends_on: Optional[date] = None


# ---------------------------------------------------------------------------
# Output value objects


class StockForecast(_Frozen):
    """Depletion forecast for a single inventory item."""

    item_id: str
    item_name: str = ""
    category: str = ""
    unit: str = ""
    current_stock: float = Field(0.0, ge=0)
    daily_average_usage: float = Field(..., ge=0)
    days_until_depletion: Optional[int] = Field(None, ge=0)
    depletion_date: Optional[date] = None
    status: ForecastStatus
    confidence: Confidence
    movement_count: int = Field(0, ge=0)


class ReorderRecommendation(_Frozen):
    """Suggested purchase for an item heading towards depletion."""

    item_id: str
    item_name: str = ""
    unit: str = ""
    current_stock: float = Field(0.0, ge=0)
    recommended_order_quantity: float = Field(..., gt=0)
    estimated_cost: float = Field(..., ge=0)
    urgency: Urgency
    days_until_depletion: Optional[int] = Field(None, ge=0)
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None


class Scenario(_Frozen):
    name: str
    daily_net: float
    days_until_zero: Optional[int] = Field(None, ge=0)


class CashRunway(_Frozen):
    """Cash runway projected under several named scenarios."""

    current_balance: float
    daily_revenue: float = Field(0.0, ge=0)
    daily_expenses: float = Field(0.0, ge=0)
    scenarios: List[Scenario]

    def scenario(self, name: str) -> Scenario:
        """Return the scenario called ``name``."""
        for scenario in self.scenarios:
            if scenario.name == name:
                return scenario
        raise KeyError(name)


class ConfidenceInterval(_Frozen):
    low: float = Field(..., ge=0)
    high: float = Field(..., ge=0)

    @model_validator(mode="after")
    def _ordered(self) -> "ConfidenceInterval":
        if self.high < self.low:
            raise ValueError("confidence interval high must be >= low")
        return self


class DemandForecast(_Frozen):
    """Expected revenue over a horizon with an interval and trend."""

    horizon_days: int = Field(..., gt=0)
    expected_revenue: float = Field(..., ge=0)
    confidence_interval: ConfidenceInterval
    trend: DemandTrend
    trend_percentage: float
    expected_expenses: Optional[float] = Field(None, ge=0)
    expense_confidence_interval: Optional[ConfidenceInterval] = None

    @property
    def period(self) -> str:
        """Short label such as ``"7d"``."""
        return f"{self.horizon_days}d"


class PeriodMargin(_Frozen):
    period: str
    margin: int


class MarginTrend(_Frozen):
    current_margin: int
    trend: MarginDirection
    period_comparison: List[PeriodMargin]


class HistoryPoint(_Frozen):
    """Revenue and expenses aggregated for one calendar day."""

    date: date
    revenue: float = Field(..., ge=0)
    expenses: float = Field(..., ge=0)


class ForecastReport(_Frozen):
    """Aggregate produced by ``build_forecast_report``."""

    tenant_id: str
    as_of: datetime
    stock_forecasts: List[StockForecast]
    reorder_recommendations: List[ReorderRecommendation]
    cash_runway: CashRunway
    demand_forecasts: List[DemandForecast]
    margin_trend: MarginTrend
    history: List[HistoryPoint] = Field(default_factory=list)
