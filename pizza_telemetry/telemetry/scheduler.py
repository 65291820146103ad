"""
Flush scheduler: wakes on a fixed interval, drains a snapshot and hands it
to the exporter on a background thread.

Both the ticker and the flush workers are daemon threads, so the scheduler
never keeps an otherwise idle process alive. At most one flush is in flight;
a tick that arrives while the previous export is still running is skipped.

States:
    IDLE     - waiting for the next tick
    FLUSHING - a snapshot is being built and exported
"""
import threading
import time
from enum import Enum
from typing import Optional

from pizza_telemetry.common.correlation import FlushContext, set_component
from pizza_telemetry.common.exceptions import ConfigurationError
from pizza_telemetry.common.logging_config import get_logger
from pizza_telemetry.monitoring.metrics import PipelineMetrics, get_pipeline_metrics
from pizza_telemetry.telemetry.exporter import ExportResult, MetricsExporter
from pizza_telemetry.telemetry.snapshot import SnapshotBuilder

logger = get_logger(__name__)


class SchedulerState(Enum):
    """Scheduler states"""
    IDLE = "idle"
    FLUSHING = "flushing"


class FlushScheduler:
    """
    Periodic snapshot-and-export driver.

    Args:
        builder: ``SnapshotBuilder`` draining the shared state
        exporter: ``MetricsExporter`` pushing the lines
        interval: seconds between ticks (default 10)
        pipeline_metrics: self-observability counters (defaults to shared)
    """

    def __init__(
        self,
        builder: SnapshotBuilder,
        exporter: MetricsExporter,
        interval: float = 10.0,
        pipeline_metrics: Optional[PipelineMetrics] = None,
    ) -> None:
        if interval <= 0:
            raise ConfigurationError(f"Flush interval must be positive, got {interval}")
        self.builder = builder
        self.exporter = exporter
        self.interval = interval
        self.pipeline_metrics = pipeline_metrics or get_pipeline_metrics()

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        # Held for the whole flush; non-blocking acquire bounds flushes to one
        self._flush_lock = threading.Lock()
        self._flush_thread: Optional[threading.Thread] = None

        self.flushes_completed = 0
        self.ticks_skipped = 0
        self.last_result: Optional[ExportResult] = None

    # -- Lifecycle ----------------------------------------------------------

    def start(self) -> None:
        """Start the ticker daemon thread."""
        if self.is_running:
            logger.warning("FlushScheduler already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="telemetry-scheduler", daemon=True
        )
        self._thread.start()
        logger.info(f"FlushScheduler started (interval={self.interval}s)")

    def stop(self, timeout: float = 5.0) -> None:
        """
        Stop ticking. An in-flight flush is left to finish on its own.
        """
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
        logger.info("FlushScheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def state(self) -> SchedulerState:
        if self._flush_lock.locked():
            return SchedulerState.FLUSHING
        return SchedulerState.IDLE

    # -- Ticking ------------------------------------------------------------

    def _run(self) -> None:
        set_component("scheduler")
        while not self._stop_event.wait(self.interval):
            self.tick()

    def tick(self) -> bool:
        """
        Spawn a background flush unless one is already running.

        Returns:
            True if a flush was started, False if the tick was skipped
        """
        if not self._flush_lock.acquire(blocking=False):
            self.ticks_skipped += 1
            self.pipeline_metrics.inc_flushes_skipped()
            logger.warning("Previous flush still running, skipping tick")
            return False

        try:
            self._flush_thread = threading.Thread(
                target=self._flush_and_release, name="telemetry-flush", daemon=True
            )
            self._flush_thread.start()
        except Exception:
            self._flush_lock.release()
            raise
        return True

    def _flush_and_release(self) -> None:
        set_component("flush")
        try:
            self._flush()
        finally:
            self._flush_lock.release()

    def flush_once(self) -> Optional[ExportResult]:
        """
        Flush synchronously on the calling thread.

        Returns:
            The export result, or None if another flush was in flight or
            the flush failed before exporting
        """
        if not self._flush_lock.acquire(blocking=False):
            logger.warning("Flush already in progress, not starting another")
            return None
        try:
            return self._flush()
        finally:
            self._flush_lock.release()

    def wait_for_flush(self, timeout: Optional[float] = None) -> bool:
        """Block until the most recently spawned flush finishes."""
        thread = self._flush_thread
        if thread is None:
            return True
        thread.join(timeout=timeout)
        return not thread.is_alive()

    def _flush(self) -> Optional[ExportResult]:
        """Build and export one snapshot. Errors are logged, never raised."""
        start = time.monotonic()
        with FlushContext() as ctx:
            try:
                lines = self.builder.build()
                result = self.exporter.send(lines)
            except Exception as exc:
                logger.exception(f"Flush {ctx.flush_id} failed: {exc}")
                return None

            elapsed = time.monotonic() - start
            self.flushes_completed += 1
            self.last_result = result
            self.pipeline_metrics.inc_flushes()
            self.pipeline_metrics.observe_flush_duration(elapsed)
            logger.info(
                f"Flush complete: {result.delivered}/{result.attempted} lines "
                f"delivered in {elapsed:.3f}s"
            )
            return result

    def get_stats(self) -> dict:
        return {
            "state": self.state.value,
            "interval": self.interval,
            "is_running": self.is_running,
            "flushes_completed": self.flushes_completed,
            "ticks_skipped": self.ticks_skipped,
            "last_delivered": self.last_result.delivered if self.last_result else None,
            "last_failed": self.last_result.failed if self.last_result else None,
        }
