"""
Composition root for the telemetry pipeline.

``TelemetryPipeline`` owns the registry and latency aggregator for the life
of the process and hands references to both the request hooks (write side)
and the scheduler (drain side).
"""
from typing import Optional, Sequence

import httpx

from pizza_telemetry.common.exceptions import ConfigurationError
from pizza_telemetry.common.logging_config import get_logger
from pizza_telemetry.monitoring.metrics import PipelineMetrics, get_pipeline_metrics
from pizza_telemetry.telemetry.exporter import ExportResult, MetricsExporter
from pizza_telemetry.telemetry.hooks import RequestHooks
from pizza_telemetry.telemetry.latency import LatencyAggregator
from pizza_telemetry.telemetry.probes import CpuProbe, MemoryProbe, SampleSource
from pizza_telemetry.telemetry.registry import CounterRegistry
from pizza_telemetry.telemetry.scheduler import FlushScheduler
from pizza_telemetry.telemetry.snapshot import SnapshotBuilder

logger = get_logger(__name__)


class TelemetryPipeline:
    """
    Wires registry, aggregator, probes, builder, exporter and scheduler.

    Args:
        url: ingestion endpoint
        source: deployment identity tagged on every metric line
        user_id: first half of the bearer credential
        api_key: second half of the bearer credential
        interval: flush period in seconds
        push_timeout: per-push HTTP timeout in seconds
        auth_path: session endpoint path for the active-user heuristic
        order_path: order submission path for pizza-creation latency
        probes: sample sources; defaults to CPU and memory
        cpu_sample_seconds: CPU sampling window for the default CPU probe
        client: optional ``httpx.Client`` for the exporter
        pipeline_metrics: self-observability counters (defaults to shared)
    """

    def __init__(
        self,
        url: str,
        source: str,
        user_id: str,
        api_key: str,
        interval: float = 10.0,
        push_timeout: float = 5.0,
        auth_path: str = "/api/auth",
        order_path: str = "/api/order",
        probes: Optional[Sequence[SampleSource]] = None,
        cpu_sample_seconds: float = 0.1,
        client: Optional[httpx.Client] = None,
        pipeline_metrics: Optional[PipelineMetrics] = None,
    ):
        if not source:
            raise ConfigurationError("Metrics source identifier is not configured")

        self.pipeline_metrics = pipeline_metrics or get_pipeline_metrics()
        self.registry = CounterRegistry(auth_path=auth_path)
        self.latency = LatencyAggregator()
        self.hooks = RequestHooks(
            self.registry, self.latency, auth_path=auth_path, order_path=order_path
        )
        if probes is None:
            probes = [CpuProbe(cpu_sample_seconds), MemoryProbe()]
        self.builder = SnapshotBuilder(
            self.registry,
            self.latency,
            probes,
            source=source,
            pipeline_metrics=self.pipeline_metrics,
        )
        self.exporter = MetricsExporter(
            url,
            user_id=user_id,
            api_key=api_key,
            timeout=push_timeout,
            client=client,
            pipeline_metrics=self.pipeline_metrics,
        )
        self.scheduler = FlushScheduler(
            self.builder,
            self.exporter,
            interval=interval,
            pipeline_metrics=self.pipeline_metrics,
        )

        logger.info(
            f"TelemetryPipeline initialized: source={source}, "
            f"interval={interval}s, probes={[p.name for p in self.builder.probes]}"
        )

    def start(self) -> None:
        self.scheduler.start()

    def stop(self) -> None:
        """
        Stop the scheduler and close the HTTP client once no flush is running.

        A running flush gets one push timeout per line of the last snapshot.
        If it is still going after that, the client is left open for it.
        """
        self.scheduler.stop()
        budget = self.exporter.timeout * max(1, self.builder.last_snapshot_size)
        if self.scheduler.wait_for_flush(timeout=budget):
            self.exporter.close()
        else:
            logger.warning(
                f"Flush still running after {budget:.1f}s; "
                f"leaving the HTTP client open until it finishes"
            )

    def flush(self) -> Optional[ExportResult]:
        return self.scheduler.flush_once()


def create_pipeline_from_config(settings, client: Optional[httpx.Client] = None) -> TelemetryPipeline:
    """
    Build a pipeline from the ``Settings`` object in ``config.settings``.

    Raises:
        ConfigurationError: if settings could not be loaded
    """
    if settings is None:
        raise ConfigurationError(
            "Telemetry settings not loaded; set METRICS_URL, METRICS_USER_ID "
            "and METRICS_API_KEY"
        )
    metrics = settings.metrics
    return TelemetryPipeline(
        url=metrics.url,
        source=metrics.source,
        user_id=metrics.user_id,
        api_key=metrics.api_key,
        interval=metrics.flush_interval_seconds,
        push_timeout=metrics.push_timeout_seconds,
        auth_path=settings.routes.auth_path,
        order_path=settings.routes.order_path,
        cpu_sample_seconds=metrics.cpu_sample_seconds,
        client=client,
    )
