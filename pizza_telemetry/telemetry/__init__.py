"""
Telemetry module - request counters, latency averages and periodic export
to the remote time-series sink.
"""
from pizza_telemetry.telemetry.exporter import ExportResult, MetricsExporter
from pizza_telemetry.telemetry.hooks import RequestHooks
from pizza_telemetry.telemetry.latency import LatencyAggregator
from pizza_telemetry.telemetry.lines import MetricLine
from pizza_telemetry.telemetry.pipeline import TelemetryPipeline, create_pipeline_from_config
from pizza_telemetry.telemetry.registry import CounterRegistry
from pizza_telemetry.telemetry.scheduler import FlushScheduler, SchedulerState
from pizza_telemetry.telemetry.snapshot import Readings, SnapshotBuilder, render_lines

__all__ = [
    "CounterRegistry",
    "ExportResult",
    "FlushScheduler",
    "LatencyAggregator",
    "MetricLine",
    "MetricsExporter",
    "Readings",
    "RequestHooks",
    "SchedulerState",
    "SnapshotBuilder",
    "TelemetryPipeline",
    "create_pipeline_from_config",
    "render_lines",
]
