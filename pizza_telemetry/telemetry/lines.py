"""
Metric line value object and its wire serializer.

A metric line is one self-describing measurement in Influx line protocol::

    request,source=jwt-pizza-service,method=get total=100

Serialization is pure and deterministic: the same line always produces the
same text, tags keep their insertion order, and the output never contains a
newline (the sink accepts exactly one metric per push).
"""
import math
from dataclasses import dataclass
from typing import Tuple, Union

from pizza_telemetry.common.exceptions import MetricLineError

Number = Union[int, float]

# Characters with special meaning in tag keys/values
_TAG_ESCAPES = (("\\", "\\\\"), (",", "\\,"), ("=", "\\="), (" ", "\\ "))


def _escape(token: str) -> str:
    if "\n" in token or "\r" in token:
        raise MetricLineError(f"Newline not allowed in metric token: {token!r}")
    if not token:
        raise MetricLineError("Empty metric token")
    for raw, escaped in _TAG_ESCAPES:
        token = token.replace(raw, escaped)
    return token


def format_value(value: Number) -> str:
    """
    Render a field value.

    Integers render without decimals. Floats render with at most four
    decimals and trailing zeros stripped, so ``0.0`` becomes ``0`` and
    ``12.50`` becomes ``12.5``.

    Raises:
        MetricLineError: for booleans, non-numbers, NaN and infinities
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MetricLineError(f"Metric value must be a number, got {value!r}")
    if isinstance(value, int):
        return str(value)
    if not math.isfinite(value):
        raise MetricLineError(f"Metric value must be finite, got {value!r}")
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text


@dataclass(frozen=True)
class MetricLine:
    """
    One measurement: ``<prefix>,<k1>=<v1>,<k2>=<v2> <field>=<value>``.

    Attributes:
        prefix: measurement name (``request``, ``auth``, ``latency`` ...)
        tags: ordered (key, value) pairs, ``source`` first
        field: field name (``total``, ``usage``, ``average``)
        value: numeric field value
    """
    prefix: str
    tags: Tuple[Tuple[str, str], ...]
    field: str
    value: Number

    def __post_init__(self):
        # Fail at construction rather than at push time
        self.serialize()

    @classmethod
    def build(
        cls,
        prefix: str,
        source: str,
        tag_key: str,
        tag_value: str,
        field: str,
        value: Number,
    ) -> "MetricLine":
        """Construct a line tagged with ``source`` plus one context tag."""
        return cls(
            prefix=prefix,
            tags=(("source", source), (tag_key, tag_value)),
            field=field,
            value=value,
        )

    def tag(self, key: str) -> str:
        for k, v in self.tags:
            if k == key:
                return v
        raise KeyError(key)

    def serialize(self) -> str:
        head = ",".join(
            [_escape(self.prefix)]
            + [f"{_escape(k)}={_escape(str(v))}" for k, v in self.tags]
        )
        return f"{head} {_escape(self.field)}={format_value(self.value)}"

    def __str__(self) -> str:
        return self.serialize()
