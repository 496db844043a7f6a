"""
Engine configuration utilities.

This module defines the ``Settings`` class used for environment variables,
the ``ForecastConfig`` model holding the tunable forecasting options, and
helper functions to load the YAML file carrying their defaults.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, List

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import InvalidInput

CONFIG_FILENAME = "forecasting.yaml"


class Settings(BaseSettings):
    """Configuration loaded from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="FORECAST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Directory holding forecasting.yaml
    config_root: str = "configs"

    # Level applied to the engine loggers by ``configure_logging``
    log_level: str = "INFO"


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Return a cached instance of ``Settings``.

    Using a cache ensures that environment variables are only read once.
    """
    return Settings()


class ForecastConfig(BaseModel):
    """Options recognised by ``build_forecast_report``."""

    model_config = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)

    analysis_window_days: int = Field(30, gt=0, description="Days of history to analyse")
    horizons: List[int] = Field(default_factory=lambda: [7, 14, 30])
    lead_time_days: int = Field(5, ge=0, description="Supplier lead time in days")
    safety_days: int = Field(3, ge=0, description="Safety stock expressed in days of usage")
    stress_factor: float = Field(0.20, ge=0.0, lt=1.0)
    ci_z: float = Field(1.0, ge=0.0, description="Width multiplier of the demand interval")
    opening_balance: float = Field(0.0, description="Cash balance before any bank event")
    trend_dead_zone_pct: float = Field(5.0, ge=0.0)
    margin_dead_zone_pp: float = Field(2.0, ge=0.0)
    margin_period_days: int = Field(30, gt=0)
    margin_periods: int = Field(2, gt=0)
    max_workers: int = Field(1, gt=0)

    @field_validator("horizons")
    @classmethod
    def _positive_horizons(cls, value: List[int]) -> List[int]:
        if any(h <= 0 for h in value):
            raise ValueError("horizons must contain positive day counts")
        return list(value)


def load_yaml(file_path: str) -> dict:
    """Load a YAML file from the given path and return its contents.

    If the file does not exist, an empty dictionary is returned.
    """
    if not os.path.exists(file_path):
        return {}
    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def build_config(values: dict[str, Any] | None = None, **overrides: Any) -> ForecastConfig:
    """Validate ``values`` (plus keyword overrides) into a ``ForecastConfig``.

    pydantic validation failures are reported as ``InvalidInput`` so callers
    only need to handle a single error type.
    """
    merged = {key: value for key, value in (values or {}).items() if value is not None}
    merged.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return ForecastConfig(**merged)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "config"
        raise InvalidInput(field, first.get("msg", "invalid value")) from exc


def load_forecast_config(config_root: str | None = None, **overrides: Any) -> ForecastConfig:
    """Read ``forecasting.yaml`` under ``config_root`` and return the config.

    Missing files fall back to the built-in defaults.  Keyword overrides win
    over file values.
    """
    root = config_root or get_settings().config_root
    values = load_yaml(os.path.join(root, CONFIG_FILENAME))
    if not isinstance(values, dict):
        raise InvalidInput(CONFIG_FILENAME, "top level must be a mapping")
    return build_config(values, **overrides)
