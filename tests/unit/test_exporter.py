"""
Unit tests for MetricsExporter using httpx.MockTransport (no network).
"""
from unittest.mock import MagicMock, patch

import httpx
import pytest

from pizza_telemetry.common.exceptions import ConfigurationError, ExportError
from pizza_telemetry.telemetry.exporter import ExportResult, MetricsExporter
from pizza_telemetry.telemetry.lines import MetricLine

URL = "https://influx.example.test/api/v1/push/influx/write"


def make_lines(count):
    return [
        MetricLine.build("request", "svc", "method", f"m{i}", "total", i)
        for i in range(1, count + 1)
    ]


def make_exporter(handler, pipeline_metrics=None):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return MetricsExporter(
        URL,
        user_id="42",
        api_key="secret",
        client=client,
        pipeline_metrics=pipeline_metrics or MagicMock(),
    )


class TestPush:

    def test_request_shape(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(204)

        exporter = make_exporter(handler)
        line = MetricLine.build("request", "svc", "method", "get", "total", 7)
        exporter.push(line)

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == URL
        assert request.headers["Authorization"] == "Bearer 42:secret"
        assert request.headers["Content-Type"] == "text/plain"
        assert request.content == b"request,source=svc,method=get total=7"

    def test_non_success_status_raises_export_error(self):
        exporter = make_exporter(lambda request: httpx.Response(401))
        with pytest.raises(ExportError) as exc_info:
            exporter.push(make_lines(1)[0])
        assert exc_info.value.status_code == 401

    def test_transport_error_raises_export_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        exporter = make_exporter(handler)
        with pytest.raises(ExportError):
            exporter.push(make_lines(1)[0])


class TestSend:

    def test_all_lines_delivered(self):
        metrics = MagicMock()
        exporter = make_exporter(lambda request: httpx.Response(200), metrics)

        result = exporter.send(make_lines(3))

        assert result == ExportResult(attempted=3, delivered=3, failed=0)
        assert result.complete
        assert metrics.inc_pushes_delivered.call_count == 3
        metrics.inc_pushes_failed.assert_not_called()

    def test_one_network_failure_does_not_abort_the_rest(self):
        bodies = []

        def handler(request):
            bodies.append(request.content.decode())
            if len(bodies) == 3:
                raise httpx.ConnectError("network down", request=request)
            return httpx.Response(204)

        metrics = MagicMock()
        exporter = make_exporter(handler, metrics)
        lines = make_lines(5)

        with patch("pizza_telemetry.telemetry.exporter.logger") as mock_logger:
            result = exporter.send(lines)

        assert bodies == [line.serialize() for line in lines]
        assert result == ExportResult(attempted=5, delivered=4, failed=1)
        assert not result.complete
        mock_logger.error.assert_called_once()
        assert "m3" in mock_logger.error.call_args[0][0]
        metrics.inc_pushes_failed.assert_called_once()

    def test_error_statuses_are_logged_not_raised(self):
        statuses = iter([200, 500, 200, 429])
        exporter = make_exporter(lambda request: httpx.Response(next(statuses)))

        with patch("pizza_telemetry.telemetry.exporter.logger") as mock_logger:
            result = exporter.send(make_lines(4))

        assert result.delivered == 2
        assert result.failed == 2
        assert mock_logger.error.call_count == 2
        mock_logger.warning.assert_called_once()
        extras = [c.kwargs["extra"] for c in mock_logger.error.call_args_list]
        assert [e["status_code"] for e in extras] == [500, 429]
        assert extras[0]["metric_line"] == "request,source=svc,method=m2 total=2"

    def test_unexpected_error_is_contained(self):
        def handler(request):
            raise RuntimeError("transport bug")

        exporter = make_exporter(handler)
        with patch("pizza_telemetry.telemetry.exporter.logger") as mock_logger:
            result = exporter.send(make_lines(2))

        assert result.failed == 2
        assert mock_logger.exception.call_count == 2

    def test_empty_snapshot(self):
        exporter = make_exporter(lambda request: httpx.Response(200))
        assert exporter.send([]) == ExportResult()


class TestLifecycle:

    def test_missing_url_rejected(self):
        with pytest.raises(ConfigurationError):
            MetricsExporter("", user_id="1", api_key="k", pipeline_metrics=MagicMock())

    def test_close_leaves_injected_client_open(self):
        client = MagicMock()
        exporter = MetricsExporter(URL, "1", "k", client=client, pipeline_metrics=MagicMock())
        exporter.close()
        client.close.assert_not_called()

    def test_close_owned_client(self):
        exporter = MetricsExporter(URL, "1", "k", pipeline_metrics=MagicMock())
        with patch.object(exporter._client, "close") as mock_close:
            exporter.close()
        mock_close.assert_called_once()
