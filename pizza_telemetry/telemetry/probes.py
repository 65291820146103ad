"""
Sample sources: pull-based CPU and memory probes backed by psutil.

A probe holds no state between reads. ``read()`` returns a utilization
percentage or raises ``ProbeError``; the snapshot builder skips the line of
a failed probe and keeps going.
"""
import math
from typing import Callable, Optional

import psutil

from pizza_telemetry.common.exceptions import ProbeError

# Upper bound on how long a CPU sample may block the flush thread
MAX_CPU_SAMPLE_SECONDS = 1.0


class SampleSource:
    """Base class for a single-reading probe."""

    name = "probe"

    def sample(self) -> float:
        raise NotImplementedError

    def read(self) -> float:
        """
        Take one reading.

        Returns:
            Utilization percentage rounded to two decimals

        Raises:
            ProbeError: if sampling fails or yields a non-finite value
        """
        try:
            value = self.sample()
        except ProbeError:
            raise
        except Exception as exc:
            raise ProbeError(f"{self.name} probe failed: {exc}") from exc

        if isinstance(value, bool) or not isinstance(value, (int, float)) \
                or not math.isfinite(value):
            raise ProbeError(f"{self.name} probe returned {value!r}")
        return round(float(value), 2)


class CpuProbe(SampleSource):
    """
    System-wide CPU utilization over a short blocking window.

    Args:
        sample_seconds: measurement window, capped at ``MAX_CPU_SAMPLE_SECONDS``.
            ``0`` compares against the previous call instead of blocking.
    """

    name = "cpu"

    def __init__(self, sample_seconds: float = 0.1):
        self.sample_seconds = max(0.0, min(sample_seconds, MAX_CPU_SAMPLE_SECONDS))

    def sample(self) -> float:
        return psutil.cpu_percent(interval=self.sample_seconds or None)


class MemoryProbe(SampleSource):
    """Share of physical memory in use, as reported by ``virtual_memory()``."""

    name = "memory"

    def sample(self) -> float:
        return psutil.virtual_memory().percent


class CallableProbe(SampleSource):
    """Adapt any zero-argument callable into a probe (used for custom sources)."""

    def __init__(self, name: str, fn: Callable[[], Optional[float]]):
        self.name = name
        self._fn = fn

    def sample(self) -> float:
        return self._fn()
