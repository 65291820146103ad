"""
Monitoring module - Prometheus metrics about the telemetry pipeline itself.
"""
from pizza_telemetry.monitoring.metrics import (
    PipelineMetrics,
    start_metrics_server,
    get_pipeline_metrics,
    reset_metrics,
)

__all__ = [
    "PipelineMetrics",
    "start_metrics_server",
    "get_pipeline_metrics",
    "reset_metrics",
]
