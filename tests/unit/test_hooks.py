"""
Unit tests for RequestHooks, the inbound surface used by request middleware.
"""
from unittest.mock import MagicMock

import pytest

from pizza_telemetry.telemetry.hooks import RequestHooks
from pizza_telemetry.telemetry.latency import LatencyAggregator
from pizza_telemetry.telemetry.registry import CounterRegistry


@pytest.fixture
def registry():
    return CounterRegistry(auth_path="/api/auth")


@pytest.fixture
def latency():
    return LatencyAggregator()


@pytest.fixture
def hooks(registry, latency):
    return RequestHooks(registry, latency, auth_path="/api/auth", order_path="/api/order")


class TestIndividualHooks:

    def test_on_http_request_received(self, hooks, registry):
        hooks.on_http_request_received("PUT")
        assert registry.peek("request.put") == 1
        assert registry.peek("request.all") == 1

    def test_on_auth_outcome(self, hooks, registry):
        hooks.on_auth_outcome(200)
        hooks.on_auth_outcome(401)
        hooks.on_auth_outcome(302)
        assert registry.peek("auth.success") == 1
        assert registry.peek("auth.failure") == 1

    def test_on_session_shape_observed(self, hooks, registry):
        hooks.on_session_shape_observed("PUT", "/api/auth", 200)
        hooks.on_session_shape_observed("PUT", "/api/auth", 500)
        assert registry.active_users == 1

    def test_on_request_completed_always_records_all(self, hooks, latency):
        hooks.on_request_completed("GET", "/api/franchise", 15.0)
        assert latency.drain("all") == 15.0
        assert latency.drain("pizza-creation") is None

    def test_order_submission_is_pizza_creation(self, hooks, latency):
        hooks.on_request_completed("POST", "/api/order", 300.0)
        hooks.on_request_completed("GET", "/api/order", 5.0)
        assert latency.drain("pizza-creation") == 300.0
        assert latency.drain("all") == pytest.approx(152.5)

    def test_on_order_outcome(self, hooks, registry):
        hooks.on_order_outcome(True, 0.008)
        hooks.on_order_outcome(False, None)
        assert registry.peek("pizza.sold") == 1
        assert registry.peek("pizza.failure") == 1
        assert registry.peek("pizza.revenue") == pytest.approx(0.008)

    def test_on_chaos_incident(self, hooks, registry):
        hooks.on_chaos_incident("url_encoding")
        assert registry.peek("chaos.url_encoding") == 1


class TestObserveRequest:

    def test_plain_request(self, hooks, registry, latency):
        hooks.observe_request("GET", "/api/franchise", 200, 12.0)

        assert registry.peek("request.get") == 1
        assert registry.peek("auth.success") == 0
        assert latency.drain("all") == 12.0

    def test_login_updates_auth_and_sessions(self, hooks, registry):
        hooks.observe_request("PUT", "/api/auth", 200, 30.0)
        assert registry.peek("auth.success") == 1
        assert registry.active_users == 1

        hooks.observe_request("DELETE", "/api/auth", 200, 4.0)
        assert registry.peek("auth.success") == 2
        assert registry.active_users == 0

    def test_failed_login(self, hooks, registry):
        hooks.observe_request("PUT", "/api/auth", 404, 30.0)
        assert registry.peek("auth.failure") == 1
        assert registry.active_users == 0

    def test_routes_under_auth_path_count_as_auth(self, hooks, registry):
        hooks.observe_request("PUT", "/api/auth/3", 401, 8.0)
        assert registry.peek("auth.failure") == 1
        assert registry.active_users == 0

        hooks.observe_request("PUT", "/api/auth/3", 200, 8.0)
        assert registry.peek("auth.success") == 1
        # User updates are not logins
        assert registry.active_users == 0

    def test_is_auth_request(self, hooks):
        assert hooks.is_auth_request("/api/auth")
        assert hooks.is_auth_request("/api/auth/")
        assert hooks.is_auth_request("/api/auth/3?x=1")
        assert not hooks.is_auth_request("/api/authority")
        assert not hooks.is_auth_request("/api/order")

    def test_pizza_order(self, hooks, latency):
        hooks.observe_request("POST", "/api/order/", 200, 80.0)
        assert latency.drain("pizza-creation") == 80.0

    def test_is_pizza_creation(self, hooks):
        assert hooks.is_pizza_creation("post", "/api/order")
        assert not hooks.is_pizza_creation("PUT", "/api/order")
        assert not hooks.is_pizza_creation("POST", "/api/order/menu")


class TestHooksNeverRaise:

    def test_registry_failure_is_contained(self, latency):
        registry = MagicMock()
        registry.record.side_effect = RuntimeError("boom")
        hooks = RequestHooks(registry, latency)

        hooks.observe_request("PUT", "/api/auth", 200, 1.0)
        hooks.on_order_outcome(True, 1.0)

        assert latency.drain("all") == 1.0
