#!/usr/bin/env python3
"""
Telemetry Agent - runs the flush scheduler as a standalone process.
Useful for smoke-testing the ingestion credentials (``--once``) and for
shipping host CPU/memory readings when the web service is not instrumented.
"""
import sys
import signal
import argparse
import threading
from typing import Optional

from config.settings import settings
from pizza_telemetry.common.logging_config import setup_logging
from pizza_telemetry.common.correlation import set_component
from pizza_telemetry.common.exceptions import ConfigurationError
from pizza_telemetry.monitoring.metrics import start_metrics_server
from pizza_telemetry.telemetry.pipeline import create_pipeline_from_config

logger = setup_logging(
    __name__,
    level=settings.logging.level if settings else "INFO",
    fmt=settings.logging.format if settings else "json",
)

set_component("agent")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Telemetry Agent - aggregate and push pizza service metrics"
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Flush interval in seconds (default: METRICS_FLUSH_INTERVAL_SECONDS)"
    )
    parser.add_argument(
        "--source",
        default=None,
        help="Source identifier tagged on every line (default: METRICS_SOURCE)"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Push a single snapshot and exit"
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Serve pipeline Prometheus metrics on this port"
    )
    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    if settings is None:
        logger.critical("Telemetry settings not loaded, check METRICS_* variables")
        return 1

    if args.interval is not None:
        settings.metrics.flush_interval_seconds = args.interval
    if args.source:
        settings.metrics.source = args.source

    try:
        pipeline = create_pipeline_from_config(settings)
    except ConfigurationError as e:
        logger.critical(f"Invalid telemetry configuration: {e}")
        return 1

    if args.once:
        result = pipeline.flush()
        pipeline.stop()
        if result is None or result.failed:
            return 1
        return 0

    port = args.metrics_port
    if port is None and settings.monitoring.metrics_server_enabled:
        port = settings.monitoring.metrics_port
    if port is not None:
        start_metrics_server(port)

    stop_event = threading.Event()

    def _signal_handler(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, shutting down...")
        stop_event.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    pipeline.start()
    logger.info("Telemetry agent running")
    stop_event.wait()

    pipeline.stop()
    logger.info(f"Telemetry agent terminated: {pipeline.scheduler.get_stats()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
