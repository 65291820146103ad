"""
Unit tests for pydantic-settings configuration.
"""
import pytest
from pydantic import ValidationError

from config.settings import (
    LoggingSettings,
    MetricsSettings,
    MonitoringSettings,
    RouteSettings,
    Settings,
)


@pytest.fixture
def metrics_env(monkeypatch):
    monkeypatch.setenv("METRICS_URL", "https://influx.example.test/write")
    monkeypatch.setenv("METRICS_USER_ID", "1234")
    monkeypatch.setenv("METRICS_API_KEY", "glc_secret")
    monkeypatch.delenv("METRICS_SOURCE", raising=False)
    monkeypatch.delenv("METRICS_FLUSH_INTERVAL_SECONDS", raising=False)


class TestMetricsSettings:

    def test_reads_environment(self, metrics_env):
        s = MetricsSettings()
        assert s.url == "https://influx.example.test/write"
        assert s.user_id == "1234"
        assert s.api_key == "glc_secret"

    def test_defaults(self, metrics_env):
        s = MetricsSettings()
        assert s.source == "jwt-pizza-service"
        assert s.flush_interval_seconds == 10.0
        assert s.push_timeout_seconds == 5.0
        assert s.cpu_sample_seconds == 0.1

    def test_overrides(self, metrics_env, monkeypatch):
        monkeypatch.setenv("METRICS_SOURCE", "jwt-pizza-service-dev")
        monkeypatch.setenv("METRICS_FLUSH_INTERVAL_SECONDS", "15")
        s = MetricsSettings()
        assert s.source == "jwt-pizza-service-dev"
        assert s.flush_interval_seconds == 15.0

    def test_credentials_required(self, metrics_env, monkeypatch):
        monkeypatch.delenv("METRICS_API_KEY")
        with pytest.raises(ValidationError):
            MetricsSettings()

    def test_interval_must_be_positive(self, metrics_env, monkeypatch):
        monkeypatch.setenv("METRICS_FLUSH_INTERVAL_SECONDS", "0")
        with pytest.raises(ValidationError):
            MetricsSettings()


class TestOtherSections:

    def test_route_defaults(self, monkeypatch):
        monkeypatch.delenv("ROUTE_AUTH_PATH", raising=False)
        monkeypatch.delenv("ROUTE_ORDER_PATH", raising=False)
        s = RouteSettings()
        assert s.auth_path == "/api/auth"
        assert s.order_path == "/api/order"

    def test_monitoring_defaults(self, monkeypatch):
        monkeypatch.delenv("METRICS_PORT", raising=False)
        monkeypatch.delenv("METRICS_SERVER_ENABLED", raising=False)
        s = MonitoringSettings()
        assert s.metrics_port == 9090
        assert s.metrics_server_enabled is False

    def test_logging_prefix(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert LoggingSettings().level == "DEBUG"

    def test_aggregate(self, metrics_env):
        s = Settings()
        assert s.metrics.user_id == "1234"
        assert s.routes.order_path == "/api/order"
