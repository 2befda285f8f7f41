from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from rolevote.core.ports import MetricsSink

try:
    from prometheus_client import Counter, Histogram  # type: ignore
except Exception:  # pragma: no cover
    Counter = Histogram = None  # type: ignore

logger = logging.getLogger("rolevote.metrics")


class PrometheusMetrics(MetricsSink):
    """Prometheus-backed MetricsSink.

    Exposes:
      - ``<namespace>_decisions_total{decision="allow|deny"}`` (Counter)
      - ``<namespace>_decision_seconds{decision="allow|deny"}`` (Histogram)

    The *name* passed by the engine is informational; instruments are fixed at
    construction. Pass a dedicated ``registry`` in tests to avoid duplicate
    registration in the global one.
    """

    _counter: Optional[Any]
    _hist: Optional[Any]

    def __init__(self, namespace: str = "rolevote", registry: Any = None) -> None:
        self._counter = None
        self._hist = None

        if Counter is None or Histogram is None:  # pragma: no cover
            return

        extra: Dict[str, Any] = {}
        if registry is not None:
            extra["registry"] = registry

        self._counter = Counter(
            f"{namespace}_decisions_total",
            "Total authorization decisions by outcome.",
            labelnames=("decision",),
            **extra,
        )
        self._hist = Histogram(
            f"{namespace}_decision_seconds",
            "Authorization decision evaluation duration in seconds.",
            labelnames=("decision",),
            **extra,
        )

    # -- MetricsSink ------------------------------------------------------------

    def inc(self, name: str, labels: Dict[str, str] | None = None) -> None:
        if self._counter is None:
            return
        decision = (labels or {}).get("decision", "unknown")
        try:
            self._counter.labels(decision=decision).inc()
        except Exception:  # pragma: no cover
            logger.debug("rolevote: prometheus inc failed", exc_info=True)

    def observe(self, name: str, value: float, labels: Dict[str, str] | None = None) -> None:
        if self._hist is None:
            return
        decision = (labels or {}).get("decision", "unknown")
        try:
            self._hist.labels(decision=decision).observe(float(value))
        except Exception:  # pragma: no cover
            logger.debug("rolevote: prometheus observe failed", exc_info=True)
