"""
Counter registry: named accumulators mutated by every request and drained
by the flush scheduler.

Each accumulator owns its own lock, so ``add`` and ``drain`` on the same
accumulator are atomic relative to each other while unrelated accumulators
never contend. A drain observes exactly the increments applied before it;
an increment racing a drain lands either in this drain or the next one,
never in both and never in neither.

Usage:
    registry = CounterRegistry()
    registry.record(HttpRequestReceived("GET"))
    registry.record(OrderOutcome(success=True, revenue=0.008))

    values = registry.drain_all()
    # {"request.all": 1, "request.get": 1, ..., "pizza.revenue": 0.008, ...}
"""
import math
import threading
from typing import Dict, List, Optional, Union

from pizza_telemetry.common.logging_config import get_logger
from pizza_telemetry.telemetry.events import (
    TRACKED_METHODS,
    SESSION_OPEN_METHODS,
    SESSION_CLOSE_METHOD,
    AuthOutcome,
    ChaosIncident,
    HttpRequestReceived,
    OrderOutcome,
    SessionOutcome,
    normalize_method,
    normalize_path,
)

logger = get_logger(__name__)

Number = Union[int, float]

REQUEST_ALL = "request.all"
AUTH_SUCCESS = "auth.success"
AUTH_FAILURE = "auth.failure"
USER_ACTIVE = "user.active"
PIZZA_SOLD = "pizza.sold"
PIZZA_FAILURE = "pizza.failure"
PIZZA_REVENUE = "pizza.revenue"
CHAOS_PREFIX = "chaos."


def request_accumulator_name(method: str) -> str:
    return f"request.{method}"


class Accumulator:
    """
    Thread-safe resettable counter.

    Args:
        name: stable metric name, e.g. ``request.get``
        zero: the value restored by ``drain`` (``0`` for counts, ``0.0`` for sums)
    """

    def __init__(self, name: str, zero: Number = 0):
        self.name = name
        self._zero = zero
        self._value: Number = zero
        self._lock = threading.Lock()

    def add(self, delta: Number = 1) -> None:
        with self._lock:
            self._value += delta

    @property
    def value(self) -> Number:
        with self._lock:
            return self._value

    def drain(self) -> Number:
        """Atomically return the current value and reset to zero."""
        with self._lock:
            value = self._value
            self._value = self._zero
            return value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r}, value={self.value!r})"


class Gauge(Accumulator):
    """Running state rather than a per-interval count: ``drain`` does not reset."""

    def drain(self) -> Number:
        return self.value


class CounterRegistry:
    """
    Fixed set of accumulators plus one lazily created counter per chaos kind.

    Only ``record`` is called from request-handling code; only ``drain_all``
    is called from the scheduler.

    Args:
        auth_path: path of the session endpoint used by the active-session
            heuristic (default ``/api/auth``)
    """

    def __init__(self, auth_path: str = "/api/auth"):
        self.auth_path = normalize_path(auth_path)

        self._requests: Dict[str, Accumulator] = {
            "all": Accumulator(REQUEST_ALL),
        }
        for method in TRACKED_METHODS:
            self._requests[method] = Accumulator(request_accumulator_name(method))

        self._auth_success = Accumulator(AUTH_SUCCESS)
        self._auth_failure = Accumulator(AUTH_FAILURE)
        self._active_users = Gauge(USER_ACTIVE)
        self._pizza_sold = Accumulator(PIZZA_SOLD)
        self._pizza_failure = Accumulator(PIZZA_FAILURE)
        self._pizza_revenue = Accumulator(PIZZA_REVENUE, zero=0.0)

        # Guards creation of chaos accumulators only, never their updates
        self._chaos: Dict[str, Accumulator] = {}
        self._chaos_lock = threading.Lock()

        self._dispatch = {
            HttpRequestReceived: self._on_http_request,
            AuthOutcome: self._on_auth_outcome,
            SessionOutcome: self._on_session_outcome,
            OrderOutcome: self._on_order_outcome,
            ChaosIncident: self._on_chaos_incident,
        }

    # -- Recording -----------------------------------------------------------

    def record(self, event) -> None:
        """
        Apply one event to the accumulators it concerns.

        Unknown event types and unrecognized subtypes are ignored.
        """
        handler = self._dispatch.get(type(event))
        if handler is None:
            logger.debug(f"Ignoring unknown telemetry event: {event!r}")
            return
        handler(event)

    def _on_http_request(self, event: HttpRequestReceived) -> None:
        self._requests["all"].add(1)
        method = normalize_method(event.method)
        if method in TRACKED_METHODS:
            self._requests[method].add(1)

    def _on_auth_outcome(self, event: AuthOutcome) -> None:
        status = event.status_code
        if not isinstance(status, int) or isinstance(status, bool):
            logger.debug(f"Ignoring auth outcome with status {status!r}")
            return
        if status == 200:
            self._auth_success.add(1)
        elif status >= 400:
            self._auth_failure.add(1)

    def _on_session_outcome(self, event: SessionOutcome) -> None:
        # Heuristic: counts register/login/logout calls, not live sessions.
        # Token expiry and repeated logouts are not reconciled.
        if event.status_code != 200:
            return
        if normalize_path(event.path) != self.auth_path:
            return
        method = normalize_method(event.method)
        if method in SESSION_OPEN_METHODS:
            self._active_users.add(1)
        elif method == SESSION_CLOSE_METHOD:
            self._active_users.add(-1)

    def _on_order_outcome(self, event: OrderOutcome) -> None:
        if not event.success:
            self._pizza_failure.add(1)
            return
        quantity = event.quantity
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            quantity = 1
        self._pizza_sold.add(quantity)

        revenue = event.revenue
        if revenue is None:
            return
        if isinstance(revenue, bool) or not isinstance(revenue, (int, float)) \
                or not math.isfinite(revenue):
            logger.debug(f"Ignoring non-numeric order revenue {revenue!r}")
            return
        self._pizza_revenue.add(float(revenue))

    def _on_chaos_incident(self, event: ChaosIncident) -> None:
        kind = event.kind if isinstance(event.kind, str) else ""
        kind = kind.strip().lower()
        if not kind:
            return
        if not kind.isprintable():
            logger.debug(f"Ignoring chaos incident with unprintable kind {kind!r}")
            return
        self._chaos_accumulator(kind).add(1)

    def _chaos_accumulator(self, kind: str) -> Accumulator:
        accumulator = self._chaos.get(kind)
        if accumulator is None:
            with self._chaos_lock:
                accumulator = self._chaos.setdefault(
                    kind, Accumulator(f"{CHAOS_PREFIX}{kind}")
                )
        return accumulator

    # -- Draining ------------------------------------------------------------

    def accumulators(self) -> List[Accumulator]:
        """All accumulators in snapshot order."""
        ordered = list(self._requests.values())
        ordered += [
            self._auth_success,
            self._auth_failure,
            self._active_users,
            self._pizza_sold,
            self._pizza_failure,
            self._pizza_revenue,
        ]
        with self._chaos_lock:
            chaos = [self._chaos[kind] for kind in sorted(self._chaos)]
        return ordered + chaos

    def drain_all(self) -> Dict[str, Number]:
        """
        Drain every accumulator into a ``name -> value`` mapping.

        Each accumulator is drained atomically on its own; the mapping as a
        whole is not a single instant across accumulators.
        """
        return {acc.name: acc.drain() for acc in self.accumulators()}

    def peek(self, name: str) -> Optional[Number]:
        """Current value of an accumulator without draining it."""
        for acc in self.accumulators():
            if acc.name == name:
                return acc.value
        return None

    @property
    def active_users(self) -> Number:
        return self._active_users.value
