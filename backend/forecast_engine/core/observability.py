r"""backend\forecast_engine\core\observability.py"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

from .config import get_settings

EVENT_LOGGER = logging.getLogger("forecast_engine.events")

_REPORT_COUNTER = Counter(
    "forecast_reports_total", "Total forecast reports built", ["outcome"]
)
_LATENCY_HISTOGRAM = Histogram(
    "forecast_report_latency_seconds", "Forecast report build latency"
)


def configure_logging(level: str | int | None = None) -> None:
    """Attach a stream handler to the engine loggers if none is configured.

    The level defaults to ``FORECAST_LOG_LEVEL`` (see ``Settings``).
    """

    if level is None:
        level = get_settings().log_level
    root = logging.getLogger("backend.forecast_engine")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    root.setLevel(level)
    EVENT_LOGGER.setLevel(level)
    for logger in (root, EVENT_LOGGER):
        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
            )
            logger.addHandler(handler)


@contextmanager
def track_report(tenant_id: str, **fields: Any) -> Iterator[dict[str, Any]]:
    """Record metrics and a structured log line around one report build.

    The yielded dict may be enriched by the caller; its contents are merged
    into the emitted JSON payload.
    """

    start_perf = time.perf_counter()
    start_wall = time.time()
    extra: dict[str, Any] = {}
    outcome = "ok"
    try:
        yield extra
    except Exception:
        outcome = "error"
        raise
    finally:
        latency = time.perf_counter() - start_perf
        _REPORT_COUNTER.labels(outcome).inc()
        _LATENCY_HISTOGRAM.observe(latency)

        log_payload = {
            "timestamp": datetime.fromtimestamp(start_wall, tz=timezone.utc).isoformat(),
            "event": "forecast_report",
            "tenant_id": tenant_id,
            "outcome": outcome,
            "latency_ms": int(latency * 1000),
            **fields,
            **extra,
        }
        EVENT_LOGGER.info(json.dumps(log_payload, default=str))


def metrics_payload() -> tuple[bytes, str]:
    """Return the Prometheus exposition payload and its content type."""

    return generate_latest(), CONTENT_TYPE_LATEST
