"""
Snapshot builder: one drain pass over the registry, the latency aggregator
and the sample sources, rendered into an ordered tuple of metric lines.

Draining and rendering are separate steps. ``SnapshotBuilder.drain()`` is the
only part touching shared state; ``render_lines()`` is a pure function of the
drained ``Readings`` and the source identifier.

Line order (stable):
    request  method=all|get|post|put|delete   total    always
    auth     status=success|failure           total    always
    user     type=active                      total    always, never reset
    system   type=cpu|memory                  usage    skipped if the probe fails
    latency  type=all|pizza-creation          average  only if observed
    pizza    type=sold|failure|revenue        total    always
    chaos    type=<kind>                      total    every kind seen so far
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple, Union

from pizza_telemetry.common.exceptions import MetricLineError
from pizza_telemetry.common.logging_config import get_logger
from pizza_telemetry.monitoring.metrics import PipelineMetrics, get_pipeline_metrics
from pizza_telemetry.telemetry.events import TRACKED_METHODS
from pizza_telemetry.telemetry.latency import CATEGORIES, LatencyAggregator
from pizza_telemetry.telemetry.lines import MetricLine
from pizza_telemetry.telemetry.probes import SampleSource
from pizza_telemetry.telemetry import registry as reg

logger = get_logger(__name__)

Number = Union[int, float]
Snapshot = Tuple[MetricLine, ...]

REQUEST_METHODS = ("all",) + TRACKED_METHODS


@dataclass(frozen=True)
class Readings:
    """Everything drained in one pass, before it is turned into lines."""
    requests: Dict[str, Number] = field(default_factory=dict)
    auth: Dict[str, Number] = field(default_factory=dict)
    active_users: Number = 0
    system: Dict[str, Optional[float]] = field(default_factory=dict)
    latency: Dict[str, Optional[float]] = field(default_factory=dict)
    pizza: Dict[str, Number] = field(default_factory=dict)
    chaos: Dict[str, Number] = field(default_factory=dict)


def _append(lines, prefix, source, tag_key, tag_value, field_name, value) -> None:
    try:
        lines.append(MetricLine.build(prefix, source, tag_key, tag_value, field_name, value))
    except MetricLineError as exc:
        logger.warning(f"Skipping {prefix} {tag_key}={tag_value!r} line: {exc}")


def render_lines(readings: Readings, source: str) -> Snapshot:
    """
    Turn drained readings into metric lines.

    Missing request/auth/pizza entries render as zero so that the absence of
    traffic is visible; missing system or latency entries render nothing.
    A reading that cannot be serialized (non-finite value, bad tag) is logged
    and left out; the rest of the snapshot still renders.
    """
    lines = []

    for method in REQUEST_METHODS:
        _append(lines, "request", source, "method", method, "total",
                readings.requests.get(method, 0))

    for status in ("success", "failure"):
        _append(lines, "auth", source, "status", status, "total",
                readings.auth.get(status, 0))

    _append(lines, "user", source, "type", "active", "total", readings.active_users)

    # Probe order, normally cpu then memory
    for probe, usage in readings.system.items():
        if usage is not None:
            _append(lines, "system", source, "type", probe, "usage", usage)

    for category in CATEGORIES:
        average = readings.latency.get(category)
        if average is not None:
            _append(lines, "latency", source, "type", category, "average", average)

    for kind, default in (("sold", 0), ("failure", 0), ("revenue", 0.0)):
        _append(lines, "pizza", source, "type", kind, "total",
                readings.pizza.get(kind, default))

    for kind in sorted(readings.chaos):
        _append(lines, "chaos", source, "type", kind, "total", readings.chaos[kind])

    return tuple(lines)


class SnapshotBuilder:
    """
    Drains shared telemetry state into a snapshot.

    Args:
        registry: counter registry to drain
        latency: latency aggregator to drain
        probes: sample sources read once per build (CPU, memory)
        source: deployment identity tagged on every line
        pipeline_metrics: self-observability counters (defaults to shared)
    """

    def __init__(
        self,
        registry: reg.CounterRegistry,
        latency: LatencyAggregator,
        probes: Sequence[SampleSource],
        source: str,
        pipeline_metrics: Optional[PipelineMetrics] = None,
    ):
        self.registry = registry
        self.latency = latency
        self.probes = list(probes)
        self.source = source
        self.pipeline_metrics = pipeline_metrics or get_pipeline_metrics()
        self.last_snapshot_size = 0

    def drain(self) -> Readings:
        counters = self.registry.drain_all()

        requests = {
            method: counters.get(reg.request_accumulator_name(method), 0)
            for method in REQUEST_METHODS
        }
        auth = {
            "success": counters.get(reg.AUTH_SUCCESS, 0),
            "failure": counters.get(reg.AUTH_FAILURE, 0),
        }
        pizza = {
            "sold": counters.get(reg.PIZZA_SOLD, 0),
            "failure": counters.get(reg.PIZZA_FAILURE, 0),
            "revenue": counters.get(reg.PIZZA_REVENUE, 0.0),
        }
        chaos = {
            name[len(reg.CHAOS_PREFIX):]: value
            for name, value in counters.items()
            if name.startswith(reg.CHAOS_PREFIX)
        }

        return Readings(
            requests=requests,
            auth=auth,
            active_users=counters.get(reg.USER_ACTIVE, 0),
            system=self._read_probes(),
            latency=self.latency.drain_all(),
            pizza=pizza,
            chaos=chaos,
        )

    def _read_probes(self) -> Dict[str, Optional[float]]:
        readings: Dict[str, Optional[float]] = {}
        for probe in self.probes:
            try:
                readings[probe.name] = probe.read()
            except Exception as exc:
                logger.warning(f"Skipping {probe.name} line: {exc}")
                self.pipeline_metrics.inc_probe_failures(probe.name)
                readings[probe.name] = None
        return readings

    def build(self) -> Snapshot:
        """Drain all state and render it into an ordered tuple of lines."""
        snapshot = render_lines(self.drain(), self.source)
        self.last_snapshot_size = len(snapshot)
        self.pipeline_metrics.set_last_snapshot_lines(len(snapshot))
        return snapshot
