"""Tests for NetworkInterceptor and NetworkRecorder.

Route handlers are captured from the mocked BrowserContext.route call and
invoked directly with mocked Route and Request objects.
"""

import asyncio
import json

import pytest
from unittest.mock import AsyncMock, Mock
from playwright.async_api import BrowserContext, Route

from boardguru_e2e.browser.network_interceptor import (
    NetworkInterceptor,
    NetworkRecorder,
    abort,
    delay,
    fulfill,
    passthrough,
)
from boardguru_e2e.exceptions import MockRouteConflict
from boardguru_e2e.models.harness_models import AbortPolicy, DelayedFulfillPolicy


@pytest.fixture
def interceptor():
    """Create a NetworkInterceptor instance."""
    return NetworkInterceptor()


@pytest.fixture
def mock_context():
    """Create a mock BrowserContext with route/unroute."""
    context = AsyncMock(spec=BrowserContext)
    context.route = AsyncMock()
    context.unroute = AsyncMock()
    return context


@pytest.fixture
def mock_route():
    """Create a mock Route."""
    route = AsyncMock(spec=Route)
    route.fulfill = AsyncMock()
    route.abort = AsyncMock()
    route.continue_ = AsyncMock()
    route.fallback = AsyncMock()
    return route


def make_request(url="http://localhost:3000/api/feedback", method="POST", post_data=None):
    request = Mock()
    request.url = url
    request.method = method
    request.post_data = post_data
    return request


def installed_handler(context, index=-1):
    """Return the handler passed to context.route."""
    return context.route.call_args_list[index].args[1]


class TestPolicyHelpers:
    """Tests for the policy constructor helpers."""

    def test_abort_defaults_to_failed(self):
        policy = abort()
        assert isinstance(policy, AbortPolicy)
        assert policy.reason == "failed"

    def test_delay_builds_delayed_fulfill(self):
        policy = delay(1500, status=200, body={"ok": True})
        assert isinstance(policy, DelayedFulfillPolicy)
        assert policy.kind == "delay"
        assert policy.delay_ms == 1500

    def test_fulfill_defaults(self):
        policy = fulfill()
        assert policy.status == 200
        assert policy.body is None
        assert policy.content_type == "application/json"


class TestRegisterRoute:
    """Tests for route registration and conflicts."""

    @pytest.mark.asyncio
    async def test_register_installs_route(self, interceptor, mock_context):
        mock = await interceptor.register_route(
            mock_context, "**/api/feedback**", "post", abort()
        )

        mock_context.route.assert_called_once()
        assert mock_context.route.call_args.args[0] == "**/api/feedback**"
        assert mock.method == "POST"
        assert mock.key == "POST **/api/feedback**"
        assert interceptor.routes == [mock]

    @pytest.mark.asyncio
    async def test_same_pattern_and_method_conflicts(self, interceptor, mock_context):
        await interceptor.register_route(mock_context, "**/api/feedback**", "POST", abort())

        with pytest.raises(MockRouteConflict) as exc_info:
            await interceptor.register_route(
                mock_context, "**/api/feedback**", "POST", fulfill(500)
            )

        assert exc_info.value.method == "POST"
        assert mock_context.route.call_count == 1

    @pytest.mark.asyncio
    async def test_same_pattern_other_method_is_allowed(self, interceptor, mock_context):
        await interceptor.register_route(mock_context, "**/api/organizations**", "GET", fulfill())
        await interceptor.register_route(mock_context, "**/api/organizations**", "POST", abort())

        assert len(interceptor.routes) == 2

    @pytest.mark.asyncio
    async def test_replace_unroutes_previous_handler(self, interceptor, mock_context):
        await interceptor.register_route(mock_context, "**/api/feedback**", "POST", abort())
        first_handler = installed_handler(mock_context)

        mock = await interceptor.register_route(
            mock_context, "**/api/feedback**", "POST", fulfill(503), replace=True
        )

        mock_context.unroute.assert_called_once_with("**/api/feedback**", first_handler)
        assert interceptor.routes == [mock]
        assert mock.policy.status == 503


class TestRouteHandler:
    """Tests for the behaviour of installed handlers."""

    @pytest.mark.asyncio
    async def test_abort_is_network_level_failure(self, interceptor, mock_context, mock_route):
        await interceptor.register_route(mock_context, "**/api/feedback**", "POST", abort("failed"))

        await installed_handler(mock_context)(mock_route, make_request())

        mock_route.abort.assert_called_once_with("failed")
        mock_route.fulfill.assert_not_called()

    @pytest.mark.asyncio
    async def test_fulfill_serializes_json_body(self, interceptor, mock_context, mock_route):
        await interceptor.register_route(
            mock_context,
            "**/api/feedback**",
            "POST",
            fulfill(201, body={"success": True, "referenceId": "FB-ABC123"}),
        )

        await installed_handler(mock_context)(mock_route, make_request())

        kwargs = mock_route.fulfill.call_args.kwargs
        assert kwargs["status"] == 201
        assert json.loads(kwargs["body"]) == {"success": True, "referenceId": "FB-ABC123"}
        assert kwargs["content_type"] == "application/json"

    @pytest.mark.asyncio
    async def test_fulfill_none_body_is_empty(self, interceptor, mock_context, mock_route):
        await interceptor.register_route(mock_context, "**/api/x", "*", fulfill(500))

        await installed_handler(mock_context)(mock_route, make_request(url="http://h/api/x"))

        assert mock_route.fulfill.call_args.kwargs["body"] == ""
        assert mock_route.fulfill.call_args.kwargs["status"] == 500

    @pytest.mark.asyncio
    async def test_method_mismatch_falls_back(self, interceptor, mock_context, mock_route):
        await interceptor.register_route(mock_context, "**/api/feedback**", "POST", abort())

        await installed_handler(mock_context)(mock_route, make_request(method="GET"))

        mock_route.fallback.assert_called_once()
        mock_route.abort.assert_not_called()
        assert interceptor.intercepted_requests == []

    @pytest.mark.asyncio
    async def test_times_limit_falls_back_after_exhausted(
        self, interceptor, mock_context, mock_route
    ):
        await interceptor.register_route(
            mock_context, "**/api/feedback**", "POST", fulfill(500), times=1
        )
        handler = installed_handler(mock_context)

        await handler(mock_route, make_request())
        await handler(mock_route, make_request())

        assert mock_route.fulfill.call_count == 1
        mock_route.fallback.assert_called_once()
        assert interceptor.get_route_stats() == {"POST **/api/feedback**": 1}

    @pytest.mark.asyncio
    async def test_passthrough_continues(self, interceptor, mock_context, mock_route):
        await interceptor.register_route(mock_context, "**/api/**", "GET", passthrough())

        await installed_handler(mock_context)(mock_route, make_request(method="GET"))

        mock_route.continue_.assert_called_once()

    @pytest.mark.asyncio
    async def test_delay_holds_response(self, interceptor, mock_context, mock_route):
        await interceptor.register_route(
            mock_context, "**/api/feedback**", "POST", delay(50, body={"ok": True})
        )

        loop = asyncio.get_running_loop()
        started = loop.time()
        await installed_handler(mock_context)(mock_route, make_request())
        elapsed_ms = (loop.time() - started) * 1000

        assert elapsed_ms >= 45
        mock_route.fulfill.assert_called_once()

    @pytest.mark.asyncio
    async def test_intercepted_requests_are_logged(self, interceptor, mock_context, mock_route):
        await interceptor.register_route(mock_context, "**/api/feedback**", "POST", abort())

        await installed_handler(mock_context)(
            mock_route, make_request(post_data='{"title": "T"}')
        )

        requests = interceptor.get_intercepted_requests(method="POST")
        assert len(requests) == 1
        assert requests[0].policy_kind == "abort"
        assert requests[0].post_data == '{"title": "T"}'
        assert interceptor.get_intercepted_requests(url_pattern="*/api/other*") == []


class TestClearRoutes:
    """Tests for teardown of installed routes."""

    @pytest.mark.asyncio
    async def test_clear_routes_unroutes_everything(self, interceptor, mock_context):
        await interceptor.register_route(mock_context, "**/api/a", "GET", fulfill())
        await interceptor.register_route(mock_context, "**/api/b", "POST", abort())

        await interceptor.clear_routes(mock_context)

        assert mock_context.unroute.call_count == 2
        assert interceptor.routes == []
        assert interceptor.get_route_stats() == {}

    @pytest.mark.asyncio
    async def test_clear_routes_logs_unroute_errors(self, interceptor, mock_context):
        await interceptor.register_route(mock_context, "**/api/a", "GET", fulfill())
        mock_context.unroute = AsyncMock(side_effect=Exception("Target closed"))

        await interceptor.clear_routes()

        assert interceptor.routes == []

    @pytest.mark.asyncio
    async def test_registering_after_clear_is_allowed(self, interceptor, mock_context):
        await interceptor.register_route(mock_context, "**/api/a", "GET", fulfill())
        await interceptor.clear_routes()

        await interceptor.register_route(mock_context, "**/api/a", "GET", fulfill(404))

        assert len(interceptor.routes) == 1


class TestWaitForRequest:
    """Tests for bounded waiting on intercepted requests."""

    @pytest.mark.asyncio
    async def test_returns_none_on_timeout(self, interceptor):
        result = await interceptor.wait_for_request("**/api/never", timeout_ms=50, interval_ms=10)
        assert result is None

    @pytest.mark.asyncio
    async def test_returns_request_once_seen(self, interceptor, mock_context, mock_route):
        await interceptor.register_route(mock_context, "**/api/feedback**", "POST", abort())
        handler = installed_handler(mock_context)

        async def fire_later():
            await asyncio.sleep(0.02)
            await handler(mock_route, make_request())

        task = asyncio.create_task(fire_later())
        result = await interceptor.wait_for_request("*/api/feedback*", timeout_ms=1000, interval_ms=5)
        await task

        assert result is not None
        assert result.method == "POST"


class TestNetworkRecorder:
    """Tests for the bounded network log."""

    def test_attach_registers_listeners(self):
        page = Mock()
        recorder = NetworkRecorder(max_entries=10)

        recorder.attach(page)

        events = [c.args[0] for c in page.on.call_args_list]
        assert events == ["request", "response", "requestfailed"]

    def test_keeps_only_latest_entries(self):
        recorder = NetworkRecorder(max_entries=2)
        for i in range(3):
            request = Mock(url=f"http://h/{i}", method="GET", resource_type="fetch")
            recorder._on_request(request)

        assert [e.url for e in recorder.entries] == ["http://h/1", "http://h/2"]

    def test_records_failures(self):
        recorder = NetworkRecorder()
        request = Mock(
            url="http://h/api/feedback",
            method="POST",
            resource_type="fetch",
            failure="net::ERR_FAILED",
        )

        recorder._on_request_failed(request)

        failures = recorder.failures()
        assert len(failures) == 1
        assert failures[0].failure == "net::ERR_FAILED"
        assert failures[0].status is None
        assert recorder.to_json()[0]["event"] == "requestfailed"

    def test_detach_removes_listeners(self):
        page = Mock()
        recorder = NetworkRecorder()
        recorder.attach(page)

        recorder.detach()

        assert page.remove_listener.call_count == 3
