"""
Logging for the telemetry pipeline.

Records are written to stdout, one per line, as JSON (default) or as plain
text for local runs (``LOG_FORMAT=text``). Every record logged during a
flush carries that flush's ID and the thread's component (``scheduler``,
``flush``, ``agent``), so all pushes of one snapshot can be grouped.

Exporter failures attach the serialized line and the HTTP status::

    logger.error(msg, extra={"metric_line": str(line), "status_code": 503})
"""
import logging
import sys
import json
from datetime import datetime, timezone
from typing import Optional

from pizza_telemetry.common.correlation import FlushCorrelationFilter

# Record attributes copied into JSON output when set
TELEMETRY_FIELDS = ("flush_id", "component", "metric_line", "status_code")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with flush context and metric line fields"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        for key in TELEMETRY_FIELDS:
            value = getattr(record, key, None)
            if value not in (None, ""):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Single-line format for terminals; appends the metric line if attached"""

    def __init__(self):
        super().__init__(
            "%(asctime)s %(levelname)-8s %(name)s [%(flush_id)s] %(message)s"
        )

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "flush_id"):
            record.flush_id = ""
        text = super().format(record)
        metric_line = getattr(record, "metric_line", None)
        if metric_line:
            text = f"{text} | {metric_line}"
        return text


_FORMATTERS = {"json": JSONFormatter, "text": TextFormatter}


def setup_logging(
    name: str,
    level: str = "INFO",
    fmt: str = "json"
) -> logging.Logger:
    """
    Attach a stdout handler to a pipeline logger.

    Args:
        name: Logger name (usually __name__)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        fmt: "json" or "text"; anything else falls back to JSON

    Returns:
        Logger whose records carry the current flush ID and component
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Reconfiguring replaces the handler
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_FORMATTERS.get(fmt.lower(), JSONFormatter)())
    handler.addFilter(FlushCorrelationFilter())
    logger.addHandler(handler)

    if not any(isinstance(f, FlushCorrelationFilter) for f in logger.filters):
        logger.addFilter(FlushCorrelationFilter())

    # Pipeline output stays off the host application's root handlers
    logger.propagate = False

    return logger


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Module-level logger; configured on first use, reused afterwards."""
    if level:
        return setup_logging(name, level)

    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logging(name, "INFO")

    if not any(isinstance(f, FlushCorrelationFilter) for f in logger.filters):
        logger.addFilter(FlushCorrelationFilter())

    return logger
