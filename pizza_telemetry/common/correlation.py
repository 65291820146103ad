"""
Flush correlation IDs for tracing one snapshot through the pipeline.
Every log line emitted while building and exporting a snapshot carries
the same ``flush_id`` so partial deliveries can be reconstructed from logs.
"""
import uuid
import logging
from typing import Optional
from contextvars import ContextVar

# Context variable for the current flush ID (thread-safe via contextvars)
_flush_id_var: ContextVar[Optional[str]] = ContextVar(
    'flush_id', default=None
)

# Context variable for component name
_component_var: ContextVar[Optional[str]] = ContextVar(
    'component', default=None
)


def generate_flush_id() -> str:
    """
    Generate a new unique flush ID.

    Returns:
        Short hex string (first 12 chars of a UUID4)
    """
    return uuid.uuid4().hex[:12]


def set_flush_id(flush_id: str) -> None:
    _flush_id_var.set(flush_id)


def get_flush_id() -> Optional[str]:
    return _flush_id_var.get()


def clear_flush_id() -> None:
    _flush_id_var.set(None)


def set_component(component: str) -> None:
    """
    Set the component name for the current context.

    Args:
        component: Component name (e.g., "scheduler", "exporter", "agent")
    """
    _component_var.set(component)


def get_component() -> Optional[str]:
    return _component_var.get()


class FlushCorrelationFilter(logging.Filter):
    """
    Logging filter that injects flush_id and component into log records.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.flush_id = get_flush_id() or ""
        record.component = get_component() or ""
        return True


class FlushContext:
    """
    Context manager scoping a flush ID to one snapshot pass.
    Restores the previous flush ID on exit.

    Usage:
        with FlushContext() as ctx:
            lines = builder.build()
            exporter.send(lines)
    """

    def __init__(self, flush_id: Optional[str] = None):
        self.flush_id = flush_id or generate_flush_id()
        self._previous_id: Optional[str] = None

    def __enter__(self) -> 'FlushContext':
        self._previous_id = get_flush_id()
        set_flush_id(self.flush_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._previous_id is not None:
            set_flush_id(self._previous_id)
        else:
            clear_flush_id()
