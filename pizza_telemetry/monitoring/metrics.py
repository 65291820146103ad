"""
Prometheus metrics describing the telemetry pipeline itself.

The business metrics (requests, orders, latency) are pushed to the remote
sink; these counters answer a different question: is the pipeline keeping up
and are pushes landing? They are served on a local HTTP port for scraping.

Usage:
    from pizza_telemetry.monitoring.metrics import get_pipeline_metrics, start_metrics_server

    start_metrics_server(port=9090)

    metrics = get_pipeline_metrics()
    metrics.inc_pushes_delivered()
    metrics.observe_flush_duration(0.42)
"""
import threading
from typing import Optional

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    start_http_server,
)

from pizza_telemetry import __version__
from pizza_telemetry.common.logging_config import get_logger

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Prometheus metric definitions (module-level singletons)
# ---------------------------------------------------------------------------

PUSHES_TOTAL = Counter(
    "pizza_telemetry_pushes_total",
    "Metric lines pushed to the ingestion endpoint, by outcome",
    ["outcome"],
)

FLUSHES_TOTAL = Counter(
    "pizza_telemetry_flushes_total",
    "Snapshots built and handed to the exporter",
)

FLUSHES_SKIPPED_TOTAL = Counter(
    "pizza_telemetry_flushes_skipped_total",
    "Scheduler ticks skipped because the previous flush was still running",
)

PROBE_FAILURES_TOTAL = Counter(
    "pizza_telemetry_probe_failures_total",
    "Sample source reads that failed and were left out of a snapshot",
    ["probe"],
)

FLUSH_DURATION = Histogram(
    "pizza_telemetry_flush_duration_seconds",
    "Time to drain, build and export one snapshot",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

LAST_SNAPSHOT_LINES = Gauge(
    "pizza_telemetry_last_snapshot_lines",
    "Number of metric lines in the most recent snapshot",
)

BUILD_INFO = Info(
    "pizza_telemetry",
    "Telemetry pipeline build / version info",
)


class PipelineMetrics:
    """
    Named helpers over the raw Prometheus objects.
    All methods are thread-safe (Prometheus client handles it).
    """

    def __init__(self) -> None:
        BUILD_INFO.info({
            "version": __version__,
            "component": "pizza_telemetry",
        })

    # -- Counters -----------------------------------------------------------

    def inc_pushes_delivered(self, count: int = 1) -> None:
        PUSHES_TOTAL.labels(outcome="delivered").inc(count)

    def inc_pushes_failed(self, count: int = 1) -> None:
        PUSHES_TOTAL.labels(outcome="failed").inc(count)

    def inc_flushes(self) -> None:
        FLUSHES_TOTAL.inc()

    def inc_flushes_skipped(self) -> None:
        FLUSHES_SKIPPED_TOTAL.inc()

    def inc_probe_failures(self, probe: str) -> None:
        PROBE_FAILURES_TOTAL.labels(probe=probe).inc()

    # -- Histograms / gauges ------------------------------------------------

    def observe_flush_duration(self, seconds: float) -> None:
        FLUSH_DURATION.observe(seconds)

    def set_last_snapshot_lines(self, count: int) -> None:
        LAST_SNAPSHOT_LINES.set(count)

    # -- Accessors for testing ----------------------------------------------

    @staticmethod
    def get_pushes_delivered() -> float:
        return PUSHES_TOTAL.labels(outcome="delivered")._value.get()

    @staticmethod
    def get_pushes_failed() -> float:
        return PUSHES_TOTAL.labels(outcome="failed")._value.get()

    @staticmethod
    def get_flushes() -> float:
        return FLUSHES_TOTAL._value.get()

    @staticmethod
    def get_flushes_skipped() -> float:
        return FLUSHES_SKIPPED_TOTAL._value.get()

    @staticmethod
    def get_probe_failures(probe: str) -> float:
        return PROBE_FAILURES_TOTAL.labels(probe=probe)._value.get()

    @staticmethod
    def get_last_snapshot_lines() -> float:
        return LAST_SNAPSHOT_LINES._value.get()


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

_pipeline_metrics: Optional[PipelineMetrics] = None
_metrics_lock = threading.Lock()


def get_pipeline_metrics() -> PipelineMetrics:
    """
    Return the shared ``PipelineMetrics`` instance.
    Creates one on first call (thread-safe).
    """
    global _pipeline_metrics
    if _pipeline_metrics is None:
        with _metrics_lock:
            if _pipeline_metrics is None:
                _pipeline_metrics = PipelineMetrics()
    return _pipeline_metrics


def start_metrics_server(port: int = 9090) -> bool:
    """
    Start the Prometheus metrics HTTP server on *port*.

    Catches ``OSError`` when the port is already in use.

    Returns:
        True if the server started
    """
    try:
        start_http_server(port)
        logger.info(
            f"Prometheus metrics server started on port {port}  "
            f"→  http://localhost:{port}/metrics"
        )
        return True
    except OSError as exc:
        logger.error(f"Failed to start metrics server on port {port}: {exc}")
        return False


def reset_metrics() -> None:
    """
    Reset all pipeline counters, gauges and the flush duration histogram.
    Useful in test suites to get deterministic values.
    """
    global _pipeline_metrics
    for c in (FLUSHES_TOTAL, FLUSHES_SKIPPED_TOTAL):
        c._value.set(0)

    for labelled in (PUSHES_TOTAL, PROBE_FAILURES_TOTAL):
        labelled._metrics.clear()

    LAST_SNAPSHOT_LINES._value.set(0)

    FLUSH_DURATION._sum.set(0)
    for bucket in FLUSH_DURATION._buckets:
        bucket.set(0)

    _pipeline_metrics = None
