"""
Exporter: pushes metric lines to the remote time-series ingestion endpoint.

One HTTP POST per line. A failed push (transport error or non-2xx status) is
logged and counted, then the next line is attempted. Nothing is retried or
carried over to the next flush: a dropped line is gone.
"""
from dataclasses import dataclass
from typing import Iterable, Optional

import httpx

from pizza_telemetry.common.exceptions import ConfigurationError, ExportError
from pizza_telemetry.common.logging_config import get_logger
from pizza_telemetry.monitoring.metrics import PipelineMetrics, get_pipeline_metrics
from pizza_telemetry.telemetry.lines import MetricLine

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExportResult:
    attempted: int = 0
    delivered: int = 0
    failed: int = 0

    @property
    def complete(self) -> bool:
        return self.failed == 0


class MetricsExporter:
    """
    Fire-and-forget pusher for metric lines.

    Usage:
        exporter = MetricsExporter(url, user_id="123", api_key="glc_...")
        result = exporter.send(lines)
        exporter.close()

    Args:
        url: ingestion endpoint
        user_id: first half of the bearer credential
        api_key: second half of the bearer credential
        timeout: per-push timeout in seconds
        client: pre-built ``httpx.Client`` (tests pass one with a mock transport)
        pipeline_metrics: self-observability counters (defaults to shared)
    """

    def __init__(
        self,
        url: str,
        user_id: str,
        api_key: str,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
        pipeline_metrics: Optional[PipelineMetrics] = None,
    ):
        if not url:
            raise ConfigurationError("Metrics ingestion URL is not configured")
        self.url = url
        self.timeout = timeout
        self._headers = {
            "Authorization": f"Bearer {user_id}:{api_key}",
            "Content-Type": "text/plain",
        }
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)
        self.pipeline_metrics = pipeline_metrics or get_pipeline_metrics()

    def push(self, line: MetricLine) -> None:
        """
        Push a single line.

        Raises:
            ExportError: on transport failure or a non-success status
        """
        body = line.serialize()
        try:
            response = self._client.post(
                self.url,
                content=body.encode("utf-8"),
                headers=self._headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise ExportError(f"Error pushing metric: {exc}") from exc

        if not response.is_success:
            raise ExportError(
                f"Failed to push metric (HTTP {response.status_code})",
                status_code=response.status_code,
            )

    def send(self, lines: Iterable[MetricLine]) -> ExportResult:
        """
        Push every line independently. Never raises.

        Returns:
            Counts of attempted, delivered and failed pushes
        """
        attempted = delivered = failed = 0

        for line in lines:
            attempted += 1
            try:
                self.push(line)
            except ExportError as exc:
                failed += 1
                self.pipeline_metrics.inc_pushes_failed()
                logger.error(
                    f"{exc}: {line}",
                    extra={"metric_line": str(line), "status_code": exc.status_code},
                )
                continue
            except Exception as exc:
                failed += 1
                self.pipeline_metrics.inc_pushes_failed()
                logger.exception(f"Unexpected error pushing metric {line}: {exc}")
                continue

            delivered += 1
            self.pipeline_metrics.inc_pushes_delivered()
            logger.debug(f"Pushed {line}")

        result = ExportResult(attempted=attempted, delivered=delivered, failed=failed)
        if failed:
            logger.warning(
                f"Partial export: {delivered}/{attempted} lines delivered, "
                f"{failed} dropped"
            )
        return result

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
