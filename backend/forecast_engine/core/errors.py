r"""backend\forecast_engine\core\errors.py

Exceptions raised by the forecasting engine.

Insufficient history is never an error: services answer with ``NO_DATA``,
``None`` or ``Stable`` sentinels instead.  Only contract violations (negative
stock, a non-positive window, malformed period lists, ...) raise.
"""

from __future__ import annotations

import math


class InvalidInput(ValueError):
    """Raised when a caller passes values that violate the engine contract."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


def require_non_negative(field: str, value: float) -> float:
    """Return ``value`` as a float, raising ``InvalidInput`` unless it is finite and >= 0."""

    number = float(value)
    if not math.isfinite(number):
        raise InvalidInput(field, f"must be a finite number, got {value!r}")
    if number < 0:
        raise InvalidInput(field, f"must be >= 0, got {value!r}")
    return number


def require_positive_int(field: str, value: int) -> int:
    """Return ``value`` as an int, raising ``InvalidInput`` unless it is > 0."""

    if isinstance(value, bool) or int(value) != value:
        raise InvalidInput(field, f"must be an integer, got {value!r}")
    number = int(value)
    if number <= 0:
        raise InvalidInput(field, f"must be a positive integer, got {value!r}")
    return number
