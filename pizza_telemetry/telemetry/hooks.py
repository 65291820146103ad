"""
Request hooks: the only surface the web layer calls.

Every method is synchronous, O(1) and never raises, so a hook can be dropped
into request middleware without any risk to the response.

Usage (per-request middleware):
    hooks = pipeline.hooks

    start = time.perf_counter()
    response = handle(request)
    hooks.observe_request(
        request.method, request.path, response.status_code,
        (time.perf_counter() - start) * 1000,
    )

    # order router, after the factory call
    hooks.on_order_outcome(success=True, revenue=order_total)
"""
from typing import Optional

from pizza_telemetry.common.logging_config import get_logger
from pizza_telemetry.telemetry.events import (
    AuthOutcome,
    ChaosIncident,
    HttpRequestReceived,
    OrderOutcome,
    SessionOutcome,
    normalize_method,
    normalize_path,
)
from pizza_telemetry.telemetry.latency import (
    CATEGORY_ALL,
    CATEGORY_PIZZA_CREATION,
    LatencyAggregator,
)
from pizza_telemetry.telemetry.registry import CounterRegistry

logger = get_logger(__name__)


class RequestHooks:
    """
    Translates request notifications into registry events and latency samples.

    Args:
        registry: shared counter registry
        latency: shared latency aggregator
        auth_path: session endpoint path
        order_path: order submission path (POST here is "pizza creation")
    """

    def __init__(
        self,
        registry: CounterRegistry,
        latency: LatencyAggregator,
        auth_path: str = "/api/auth",
        order_path: str = "/api/order",
    ):
        self.registry = registry
        self.latency = latency
        self.auth_path = normalize_path(auth_path)
        self.order_path = normalize_path(order_path)

    def on_http_request_received(self, method: str) -> None:
        self._safely(self.registry.record, HttpRequestReceived(method))

    def on_auth_outcome(self, status_code: int) -> None:
        self._safely(self.registry.record, AuthOutcome(status_code))

    def on_session_shape_observed(self, method: str, path: str, status_code: int) -> None:
        self._safely(self.registry.record, SessionOutcome(method, path, status_code))

    def on_request_completed(self, method: str, path: str, duration_ms: float) -> None:
        self._safely(self.latency.observe, CATEGORY_ALL, duration_ms)
        if self.is_pizza_creation(method, path):
            self._safely(self.latency.observe, CATEGORY_PIZZA_CREATION, duration_ms)

    def on_order_outcome(
        self,
        success: bool,
        revenue: Optional[float] = None,
        quantity: int = 1,
    ) -> None:
        self._safely(
            self.registry.record,
            OrderOutcome(success=bool(success), revenue=revenue, quantity=quantity),
        )

    def on_chaos_incident(self, kind: str) -> None:
        self._safely(self.registry.record, ChaosIncident(kind))

    def observe_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
    ) -> None:
        """
        Record everything a finished request contributes.

        Counts the method and records latency. Calls under the auth path also
        count as auth outcomes; only the auth path itself feeds the
        active-session heuristic.
        """
        self.on_http_request_received(method)
        self.on_request_completed(method, path, duration_ms)
        if self.is_auth_request(path):
            self.on_auth_outcome(status_code)
            self.on_session_shape_observed(method, path, status_code)

    def is_auth_request(self, path: str) -> bool:
        """True for the auth path and every route mounted under it."""
        path = normalize_path(path)
        return path == self.auth_path or path.startswith(self.auth_path + "/")

    def is_pizza_creation(self, method: str, path: str) -> bool:
        return normalize_method(method) == "post" and normalize_path(path) == self.order_path

    @staticmethod
    def _safely(fn, *args) -> None:
        # Telemetry must never break the request that reported it
        try:
            fn(*args)
        except Exception as exc:
            logger.warning(f"Telemetry hook {getattr(fn, '__name__', fn)} failed: {exc}")
