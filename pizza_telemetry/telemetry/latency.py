"""
Latency aggregator: per-category buffers of request durations reduced to a
mean once per flush.

An empty series drains to ``None``. Callers must treat ``None`` as "no data"
and never publish it as ``0``.
"""
import math
import threading
from typing import Dict, List, Optional

from pizza_telemetry.common.logging_config import get_logger

logger = get_logger(__name__)

CATEGORY_ALL = "all"
CATEGORY_PIZZA_CREATION = "pizza-creation"
CATEGORIES = (CATEGORY_ALL, CATEGORY_PIZZA_CREATION)


class LatencySeries:
    """Thread-safe buffer of millisecond observations since the last drain."""

    def __init__(self, category: str):
        self.category = category
        self._samples: List[float] = []
        self._lock = threading.Lock()

    def observe(self, duration_ms: float) -> None:
        with self._lock:
            self._samples.append(duration_ms)

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def drain(self) -> Optional[float]:
        """Return the arithmetic mean of buffered samples and empty the buffer."""
        with self._lock:
            samples = self._samples
            self._samples = []
        if not samples:
            return None
        try:
            return math.fsum(samples) / len(samples)
        except OverflowError:
            logger.warning(
                f"Dropping {len(samples)} {self.category} latency sample(s): sum overflowed"
            )
            return None


class LatencyAggregator:
    """
    Holds one ``LatencySeries`` per known category.

    Usage:
        latency = LatencyAggregator()
        latency.observe("all", 12.5)
        latency.drain("all")            # 12.5
        latency.drain("pizza-creation")  # None
    """

    def __init__(self, categories=CATEGORIES):
        self._series: Dict[str, LatencySeries] = {
            category: LatencySeries(category) for category in categories
        }

    @property
    def categories(self) -> List[str]:
        return list(self._series)

    def observe(self, category: str, duration_ms: float) -> None:
        """
        Append one observation.

        Unknown categories and negative, non-numeric or non-finite durations
        are dropped.
        """
        series = self._series.get(category)
        if series is None:
            logger.debug(f"Ignoring latency for unknown category {category!r}")
            return
        if isinstance(duration_ms, bool) or not isinstance(duration_ms, (int, float)):
            logger.debug(f"Ignoring non-numeric latency {duration_ms!r}")
            return
        if not math.isfinite(duration_ms) or duration_ms < 0:
            logger.debug(f"Ignoring invalid latency {duration_ms!r}")
            return
        series.observe(float(duration_ms))

    def drain(self, category: str) -> Optional[float]:
        series = self._series.get(category)
        if series is None:
            return None
        return series.drain()

    def drain_all(self) -> Dict[str, Optional[float]]:
        return {category: series.drain() for category, series in self._series.items()}
