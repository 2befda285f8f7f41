from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from rolevote.core.ports import MetricsSink

try:
    from opentelemetry.metrics import get_meter  # type: ignore
except Exception:  # pragma: no cover
    get_meter = None  # type: ignore

logger = logging.getLogger("rolevote.metrics")


class OpenTelemetryMetrics(MetricsSink):
    """OpenTelemetry-backed MetricsSink.

    Creates:
      - Counter: rolevote_decisions_total (attributes: decision)
      - Histogram: rolevote_decision_seconds (unit: s)
    """

    _counter: Optional[Any]
    _hist: Optional[Any]

    def __init__(self, meter_name: str = "rolevote.metrics") -> None:
        self._counter = None
        self._hist = None

        if get_meter is None:  # pragma: no cover
            return

        meter = get_meter(meter_name)
        try:
            self._counter = meter.create_counter(
                name="rolevote_decisions_total",
                description="Total authorization decisions by outcome.",
            )
        except Exception:  # pragma: no cover
            self._counter = None

        create_hist = getattr(meter, "create_histogram", None)
        if create_hist is not None:
            try:
                self._hist = create_hist(
                    name="rolevote_decision_seconds",
                    description="Authorization decision evaluation duration in seconds.",
                    unit="s",
                )
            except Exception:  # pragma: no cover
                self._hist = None

    # -- MetricsSink ------------------------------------------------------------

    def inc(self, name: str, labels: Dict[str, str] | None = None) -> None:
        if self._counter is None:
            return
        try:
            self._counter.add(1, {"decision": (labels or {}).get("decision", "unknown")})
        except Exception:  # pragma: no cover
            logger.debug("rolevote: otel counter add failed", exc_info=True)

    def observe(self, name: str, value: float, labels: Dict[str, str] | None = None) -> None:
        if self._hist is None:
            return
        try:
            self._hist.record(float(value), {"decision": (labels or {}).get("decision", "unknown")})
        except Exception:  # pragma: no cover
            logger.debug("rolevote: otel histogram record failed", exc_info=True)
