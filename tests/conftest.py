"""
Shared fixtures for the telemetry test suite.
"""
import pytest

from pizza_telemetry.monitoring.metrics import reset_metrics


@pytest.fixture(autouse=True)
def _reset_pipeline_metrics():
    """Reset Prometheus self-metrics before each test for isolation."""
    reset_metrics()
    yield
    reset_metrics()
