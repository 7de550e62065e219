"""Network request interception and mocking for scenarios.

This module provides the NetworkInterceptor, which installs declarative mock
routes on a Playwright browser context or page, and the NetworkRecorder,
which keeps a bounded log of the real network traffic of a page for failure
reports.

Routes are evaluated newest first. A route that does not apply to a request
(method mismatch, exhausted ``times``) calls ``route.fallback()`` so older
routes and finally the real network get the request.
"""

import asyncio
import fnmatch
import json
import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple, Union

from playwright.async_api import BrowserContext, Page, Request, Response, Route

from ..exceptions import MockRouteConflict
from ..models.harness_models import (
    AbortPolicy,
    AbortReason,
    DelayedFulfillPolicy,
    FulfillPolicy,
    InterceptedRequest,
    MockRoute,
    NetworkLogEntry,
    PassthroughPolicy,
    ResponsePolicy,
)

logger = logging.getLogger(__name__)

RouteTarget = Union[BrowserContext, Page]


def fulfill(
    status: int = 200,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    content_type: str = "application/json",
) -> FulfillPolicy:
    """Policy answering with a synthetic response."""
    return FulfillPolicy(
        status=status, body=body, headers=headers or {}, content_type=content_type
    )


def abort(reason: AbortReason = "failed") -> AbortPolicy:
    """Policy failing the request at the network level."""
    return AbortPolicy(reason=reason)


def delay(
    delay_ms: int,
    status: int = 200,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    content_type: str = "application/json",
) -> DelayedFulfillPolicy:
    """Policy holding the request for delay_ms before fulfilling it."""
    return DelayedFulfillPolicy(
        delay_ms=delay_ms,
        status=status,
        body=body,
        headers=headers or {},
        content_type=content_type,
    )


def passthrough() -> PassthroughPolicy:
    """Policy letting the request through to the backend."""
    return PassthroughPolicy()


def _serialize_body(body: Any) -> Union[str, bytes]:
    """Encode a policy body for route.fulfill.

    dict and list bodies are JSON-encoded, None becomes an empty body.
    """
    if body is None:
        return ""
    if isinstance(body, (str, bytes)):
        return body
    return json.dumps(body)


class NetworkInterceptor:
    """Register mock routes and track the requests they handle.

    One interceptor belongs to one scenario. At most one route is active per
    (url_pattern, METHOD) pair; overlapping patterns are resolved in favour of
    the most recently registered route.

    Example:
        interceptor = NetworkInterceptor()
        await interceptor.register_route(
            context, "**/api/feedback**", "POST", abort("failed")
        )
    """

    def __init__(self):
        """Initialize the network interceptor."""
        self.intercepted_requests: List[InterceptedRequest] = []
        self._routes: Dict[str, Tuple[MockRoute, Callable, RouteTarget]] = {}
        self._call_counts: Dict[str, int] = {}

    @property
    def routes(self) -> List[MockRoute]:
        """Active routes in registration order."""
        return [route for route, _, _ in self._routes.values()]

    async def register_route(
        self,
        target: RouteTarget,
        url_pattern: str,
        method: str = "*",
        policy: Optional[ResponsePolicy] = None,
        times: Optional[int] = None,
        replace: bool = False,
    ) -> MockRoute:
        """Install a mock route before any matching request is sent.

        Args:
            target: Browser context or page to install the route on
            url_pattern: Playwright glob pattern
            method: HTTP method, or ``*`` for any method
            policy: Response policy, defaults to an empty 200 response
            times: Serve at most this many requests, then fall back
            replace: Replace an existing route with the same pattern and method

        Returns:
            The registered MockRoute

        Raises:
            MockRouteConflict: If a route with the same pattern and method is
                already active and replace is False
        """
        mock = MockRoute(
            url_pattern=url_pattern,
            method=method.upper(),
            policy=policy or fulfill(),
            times=times,
        )

        existing = self._routes.get(mock.key)
        if existing is not None:
            if not replace:
                raise MockRouteConflict(url_pattern, mock.method)
            await self._unregister(mock.key)

        handler = self._create_handler(mock)
        await target.route(url_pattern, handler)

        self._routes[mock.key] = (mock, handler, target)
        self._call_counts[mock.key] = 0
        logger.info(
            f"Registered mock route {mock.key} -> {mock.policy.kind}"
            + (f" (times={times})" if times else "")
        )
        return mock

    async def unregister_route(self, url_pattern: str, method: str = "*") -> bool:
        """Remove one route. Returns False if it was not registered."""
        key = f"{method.upper()} {url_pattern}"
        if key not in self._routes:
            return False
        await self._unregister(key)
        return True

    async def _unregister(self, key: str) -> None:
        mock, handler, target = self._routes.pop(key)
        self._call_counts.pop(key, None)
        await target.unroute(mock.url_pattern, handler)
        logger.debug(f"Unrouted {key}")

    def _create_handler(self, mock: MockRoute) -> Callable:
        """Create the Playwright route handler applying mock's policy."""

        async def handler(route: Route, request: Request) -> None:
            if not mock.matches_method(request.method):
                await route.fallback()
                return

            served = self._call_counts.get(mock.key, 0)
            if mock.times is not None and served >= mock.times:
                logger.debug(f"Route {mock.key} exhausted after {mock.times} request(s)")
                await route.fallback()
                return
            self._call_counts[mock.key] = served + 1

            self.intercepted_requests.append(
                InterceptedRequest(
                    url=request.url,
                    method=request.method,
                    route_key=mock.key,
                    policy_kind=mock.policy.kind,
                    post_data=request.post_data,
                )
            )
            logger.debug(f"Intercepted {request.method} {request.url} ({mock.key})")

            policy = mock.policy
            if isinstance(policy, AbortPolicy):
                await route.abort(policy.reason)
            elif isinstance(policy, PassthroughPolicy):
                await route.continue_()
            else:
                if isinstance(policy, DelayedFulfillPolicy) and policy.delay_ms > 0:
                    await asyncio.sleep(policy.delay_ms / 1000.0)
                await route.fulfill(
                    status=policy.status,
                    headers=policy.headers,
                    content_type=policy.content_type,
                    body=_serialize_body(policy.body),
                )

        return handler

    async def clear_routes(self, target: Optional[RouteTarget] = None) -> None:
        """Remove every route this interceptor installed.

        Args:
            target: Only clear routes installed on this target; all targets
                when omitted

        Unroute failures (for example on an already closed page) are logged.
        """
        keys = [
            key
            for key, (_, _, route_target) in self._routes.items()
            if target is None or route_target is target
        ]
        logger.info(f"Clearing {len(keys)} mock route(s)")

        for key in keys:
            try:
                await self._unregister(key)
            except Exception as e:
                logger.warning(f"Error unrouting {key}: {e}")

    def get_intercepted_requests(
        self,
        url_pattern: Optional[str] = None,
        method: Optional[str] = None,
    ) -> List[InterceptedRequest]:
        """Intercepted requests, optionally filtered by glob pattern and method."""
        requests = self.intercepted_requests
        if method:
            requests = [r for r in requests if r.method.upper() == method.upper()]
        if url_pattern:
            requests = [r for r in requests if fnmatch.fnmatch(r.url, url_pattern)]
        return list(requests)

    def clear_intercepted_requests(self) -> None:
        self.intercepted_requests.clear()

    def get_route_stats(self) -> Dict[str, int]:
        """Number of requests served per active route key.

        Example:
            {"POST **/api/feedback**": 1}
        """
        return dict(self._call_counts)

    async def wait_for_request(
        self,
        url_pattern: str,
        timeout_ms: int = 5000,
        interval_ms: int = 50,
    ) -> Optional[InterceptedRequest]:
        """Poll until a request matching url_pattern has been intercepted.

        Returns:
            The first matching request, or None if none arrives in time
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000.0

        while True:
            for request in self.intercepted_requests:
                if fnmatch.fnmatch(request.url, url_pattern):
                    return request
            if loop.time() >= deadline:
                break
            await asyncio.sleep(interval_ms / 1000.0)

        logger.warning(f"No request matching {url_pattern} within {timeout_ms}ms")
        return None


class NetworkRecorder:
    """Bounded log of a page's network events.

    Listens to ``request``, ``response`` and ``requestfailed`` and keeps the
    most recent ``max_entries`` events.
    """

    def __init__(self, max_entries: int = 200):
        self._entries: Deque[NetworkLogEntry] = deque(maxlen=max_entries)
        self._page: Optional[Page] = None

    def attach(self, page: Page) -> None:
        """Start recording the page's traffic."""
        if self._page is not None:
            self.detach()
        page.on("request", self._on_request)
        page.on("response", self._on_response)
        page.on("requestfailed", self._on_request_failed)
        self._page = page

    def detach(self) -> None:
        if self._page is None:
            return
        self._page.remove_listener("request", self._on_request)
        self._page.remove_listener("response", self._on_response)
        self._page.remove_listener("requestfailed", self._on_request_failed)
        self._page = None

    def _on_request(self, request: Request) -> None:
        self._entries.append(
            NetworkLogEntry(
                event="request",
                url=request.url,
                method=request.method,
                resource_type=request.resource_type,
            )
        )

    def _on_response(self, response: Response) -> None:
        self._entries.append(
            NetworkLogEntry(
                event="response",
                url=response.url,
                method=response.request.method,
                status=response.status,
                resource_type=response.request.resource_type,
            )
        )

    def _on_request_failed(self, request: Request) -> None:
        self._entries.append(
            NetworkLogEntry(
                event="requestfailed",
                url=request.url,
                method=request.method,
                failure=request.failure,
                resource_type=request.resource_type,
            )
        )

    @property
    def entries(self) -> List[NetworkLogEntry]:
        return list(self._entries)

    def failures(self) -> List[NetworkLogEntry]:
        """Entries for requests that failed without an HTTP response."""
        return [e for e in self._entries if e.event == "requestfailed"]

    def to_json(self) -> List[Dict[str, Any]]:
        return [entry.model_dump(mode="json") for entry in self._entries]
