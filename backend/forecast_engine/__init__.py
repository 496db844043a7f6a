r"""backend\forecast_engine\__init__.py

Forecasting & recommendation engine for the back-office service."""

from importlib import import_module
from typing import Any

_EXPORTS = {
    "build_forecast_report": "services.report_service",
    "ForecastReportService": "services.report_service",
    "ForecastConfig": "core.config",
    "load_forecast_config": "core.config",
    "InvalidInput": "core.errors",
}

__all__ = sorted(_EXPORTS)


def __getattr__(name: str) -> Any:
    if name in _EXPORTS:
        module = import_module(f"{__name__}.{_EXPORTS[name]}")
        value = getattr(module, name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
